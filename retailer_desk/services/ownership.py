"""Ownership gate for single-retailer access by representatives."""

from __future__ import annotations

from typing import Any

from loguru import logger

from retailer_desk.core.deps import CallerIdentity
from retailer_desk.core.exceptions import NotFoundError, PermissionDeniedError
from retailer_desk.models import Retailer
from retailer_desk.schemas.retailer import RetailerPatch
from retailer_desk.services.assignments import AssignmentRegistry
from retailer_desk.services.retailers import RetailerDirectory


class OwnershipGate:
    """Administrators may touch any retailer; representatives only assigned ones.

    Existing-but-unassigned retailers yield ``PermissionDeniedError``, never
    ``NotFoundError``.
    """

    def __init__(self, registry: AssignmentRegistry, directory: RetailerDirectory) -> None:
        self.registry = registry
        self.directory = directory

    async def can_modify(self, caller: CallerIdentity, retailer_id: int) -> bool:
        if caller.is_admin:
            return True
        return await self.registry.exists(caller.id, retailer_id)

    async def ensure_can_modify(self, caller: CallerIdentity, retailer_id: int) -> None:
        if not await self.can_modify(caller, retailer_id):
            logger.bind(caller_id=caller.id, retailer_id=retailer_id).warning("ownership_denied")
            raise PermissionDeniedError("You do not have access to this retailer")

    async def resolve_owned(self, caller: CallerIdentity, uid: str) -> Retailer:
        """Load a retailer by uid and check the caller may modify it."""

        retailer = await self.directory.get_model_by_uid(uid)
        if retailer is None:
            raise NotFoundError("Retailer not found")
        await self.ensure_can_modify(caller, retailer.id)
        return retailer

    async def patch_by_uid(self, caller: CallerIdentity, uid: str, payload: RetailerPatch) -> dict[str, Any]:
        """Apply a representative's points/routes/notes change to an owned retailer."""

        retailer = await self.resolve_owned(caller, uid)
        changes = payload.model_dump(exclude_unset=True)
        # routes/notes may be cleared; points may not.
        if changes.get("points", 0) is None:
            del changes["points"]
        return await self.directory.update(retailer.id, changes)
