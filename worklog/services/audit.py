"""
Audit logging service.
Append-only audit log with integrity hashing.
"""
import hashlib
import json
import uuid
from datetime import datetime
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session

from ..auth.policy import Actor
from ..config import settings
from ..models.models import AuditLog


def _jsonable(value: Optional[Dict]) -> Optional[Dict]:
    # Dates, times and UUIDs become strings so the payload fits a JSON column
    if value is None:
        return None
    return json.loads(json.dumps(value, default=str))


def integrity_hash_for(
    entity_type: str,
    entity_id: str,
    action: str,
    actor_id: Optional[str],
    actor_role: Optional[str],
    timestamp_utc: datetime,
    changes: Optional[Dict],
    secret: str,
) -> str:
    canonical_data = {
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "action": action,
        "actor_id": str(actor_id) if actor_id else None,
        "actor_role": actor_role,
        "timestamp_utc": timestamp_utc.isoformat(),
        "changes": changes,
    }
    # Remove None values and sort keys for consistency
    canonical_data = {k: v for k, v in canonical_data.items() if v is not None}
    canonical_json = json.dumps(canonical_data, sort_keys=True, default=str)
    return hashlib.sha256(f"{canonical_json}:{secret}".encode()).hexdigest()


def record_audit(
    db: Session,
    entity_type: str,
    entity_id: uuid.UUID,
    action: str,
    actor: Optional[Actor] = None,
    changes: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Stage an append-only audit entry in the caller's transaction.

    The entry is committed together with the change it describes; the caller
    owns the commit.

    Args:
        db: Database session
        entity_type: daily_log|employee
        entity_id: Entity ID
        action: CREATE|UPDATE|SUBMIT|APPROVE|DELETE|TOGGLE|ATTACH
        actor: Acting user, if any
        changes: Before/after diff or snapshot
    """
    timestamp_utc = datetime.utcnow()
    changes_json = _jsonable(changes)
    actor_id = actor.id if actor else None
    actor_role = actor.role.value if actor else "system"

    audit_log = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor_id=actor_id,
        actor_role=actor_role,
        changes_json=changes_json,
        timestamp_utc=timestamp_utc,
        integrity_hash=integrity_hash_for(
            entity_type, str(entity_id), action, actor_id, actor_role,
            timestamp_utc, changes_json, settings.jwt_secret,
        ),
    )
    db.add(audit_log)
    return audit_log


def get_audit_logs(
    db: Session,
    entity_type: Optional[str] = None,
    entity_id: Optional[uuid.UUID] = None,
    limit: int = 100,
) -> List[AuditLog]:
    query = db.query(AuditLog)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)
    return query.order_by(AuditLog.timestamp_utc.desc()).limit(limit).all()


def compute_diff(before: Dict, after: Dict) -> Dict:
    """Before/after values for the keys whose value changed."""
    diff = {}
    for key in set(before.keys()) | set(after.keys()):
        before_val = before.get(key)
        after_val = after.get(key)
        if before_val != after_val:
            diff[key] = {"before": before_val, "after": after_val}
    return diff
