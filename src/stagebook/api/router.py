"""Main API router aggregating all v1 routes."""

from fastapi import APIRouter

from stagebook.api.routes import bookings, contracts, health, reminders, signatures

# Create main router
api_router = APIRouter()

# Include route modules
api_router.include_router(health.router)
api_router.include_router(bookings.router)
api_router.include_router(contracts.router)
api_router.include_router(signatures.router)
api_router.include_router(reminders.router)
