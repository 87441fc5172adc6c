"""Ports for contract storage."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import Protocol

from stagebook.domain.contracts.models import Contract, ContractStatus


class ContractRepositoryPort(Protocol):
    """Repository interface for contracts."""

    async def get(self, contract_id: str) -> Contract | None:
        """Get contract by ID."""

    async def add(self, contract: Contract) -> None:
        """Persist a new contract."""

    async def save(self, contract: Contract) -> None:
        """Persist changes to an existing contract."""

    async def get_all(
        self,
        *,
        statuses: Collection[ContractStatus] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[Contract]:
        """List contracts, optionally filtered by status, oldest event first."""
