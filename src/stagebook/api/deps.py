"""FastAPI dependencies for API routes.

Routes receive a ``Services`` bundle scoped to the request; with database
storage the bundle shares one session that commits when the route returns.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request

from stagebook.container import ServiceContainer, Services


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def get_services(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> AsyncGenerator[Services, None]:
    async with container.scope() as services:
        yield services


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]
ServicesDep = Annotated[Services, Depends(get_services)]

__all__ = [
    "ContainerDep",
    "ServicesDep",
    "get_container",
    "get_services",
]
