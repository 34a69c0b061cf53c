"""Shared helpers for database error handling."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError

from retailer_desk.core.exceptions import ConflictError, NotFoundError

MYSQL_DUPLICATE_KEY = 1062
MYSQL_FK_VIOLATION_CODES = {1216, 1217, 1451, 1452}


def _error_code(exc: IntegrityError) -> int | None:
    orig = getattr(exc, "orig", None)
    if orig and getattr(orig, "args", None):
        try:
            return int(orig.args[0])
        except (TypeError, ValueError):
            return None
    return None


def raise_on_integrity_conflict(
    exc: IntegrityError,
    detail: str,
    *,
    fk_detail: Optional[str] = None,
) -> None:
    """Translate unique/foreign-key violations into client errors.

    Foreign-key violations become a 404 for a missing referenced row, or a
    409 with ``fk_detail`` when the caller is deleting a row still in use.
    """

    code = _error_code(exc)
    message = str(getattr(exc, "orig", exc)).lower()
    if code == MYSQL_DUPLICATE_KEY or "duplicate" in message or "unique" in message:
        raise ConflictError(detail) from exc
    if code in MYSQL_FK_VIOLATION_CODES or "foreign key" in message:
        if fk_detail:
            raise ConflictError(fk_detail) from exc
        raise NotFoundError("Referenced record not found") from exc
    raise exc
