"""
Audit Service
Persists audit rows alongside the change they describe
"""

from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from r2p.models.audit_log import AuditLog
from r2p.utils.logger import log_audit


def record_audit(
    db: Session,
    user_id: int,
    action: str,
    entity_type: str,
    entity_id: Optional[int],
    description: str,
    changes: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an audit row to the current transaction and mirror it to the audit log file

    The row is not committed here; it lands with the caller's commit so an
    aborted change leaves no audit entry behind.
    """
    row = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        changes=changes
    )
    db.add(row)
    log_audit(user_id, action, description)
    return row
