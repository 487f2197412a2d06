from __future__ import annotations

from typing import TYPE_CHECKING, Any

from absence_coverage.models.audit import AuditLog

if TYPE_CHECKING:
    import uuid

    from pydantic import BaseModel
    from sqlalchemy.ext.asyncio import AsyncSession

    from absence_coverage.models.enums import AuditAction, AuditEntityType


def model_to_audit_dict(model: BaseModel) -> dict[str, Any]:
    """Serialize a domain value or table row to a JSON-safe dict for audit logging."""
    return model.model_dump(mode="json")


async def write_audit_log(
    session: AsyncSession,
    *,
    funeral_home_id: uuid.UUID,
    actor_id: uuid.UUID,
    entity_type: AuditEntityType,
    entity_id: uuid.UUID,
    action: AuditAction,
    before_json: dict[str, Any] | None = None,
    after_json: dict[str, Any] | None = None,
) -> AuditLog:
    """Write an immutable audit log entry within the caller's transaction."""
    entry = AuditLog(
        funeral_home_id=funeral_home_id,
        actor_id=actor_id,
        entity_type=entity_type.value,
        entity_id=entity_id,
        action=action.value,
        before_json=before_json,
        after_json=after_json,
    )
    session.add(entry)
    return entry
