import json

from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog


def log_audit(db: Session, actor: str, action: str, entity_type: str, entity_id, details: dict | None = None):
    """Stage an audit row in the caller's unit of work; the caller commits."""
    db.add(AuditLog(
        actor=str(actor),
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details_json=json.dumps(details or {}, ensure_ascii=False, default=str),
    ))


def list_audit(db: Session, action: str | None = None, entity_id=None, limit: int = 200):
    q = db.query(AuditLog)
    if action:
        q = q.filter(AuditLog.action == action)
    if entity_id is not None:
        q = q.filter(AuditLog.entity_id == str(entity_id))
    return q.order_by(AuditLog.id.desc()).limit(limit).all()
