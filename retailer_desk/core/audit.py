"""Audit logging utilities."""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

_SENSITIVE_FIELDS = {"password", "password_hash"}


def _sanitize(details: dict[str, Any]) -> dict[str, Any]:
    return {k: ("***" if k in _SENSITIVE_FIELDS else v) for k, v in details.items()}


def log_audit(
    user_id: Optional[int],
    entity: str,
    entity_id: Optional[str],
    action: str,
    details: Optional[dict[str, Any]] = None,
    remote_addr: Optional[str] = None,
) -> None:
    """Emit a structured audit event for a write operation."""

    logger.bind(
        audit=True,
        actor=user_id,
        entity=entity,
        entity_id=entity_id,
        action=action,
        details=_sanitize(details) if details else None,
        remote_addr=remote_addr,
    ).info("audit_event")
