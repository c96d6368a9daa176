"""
Tests for the audit logger.
"""
from clmp.db.models import AuditLog
from clmp.services.audit_service import AuditAction, record


def test_record_writes_entry(db_session, new_user_id):
    actor_id, target_id = new_user_id(), new_user_id()

    written = record(
        db_session,
        actor_id=actor_id,
        action=AuditAction.DELETE_USER_DENIED,
        resource_type="user",
        resource_id=target_id,
        details={"reason": "Insufficient permissions"},
    )

    assert written is True
    entry = db_session.query(AuditLog).one()
    assert entry.user_id == actor_id
    assert entry.action == "DELETE_USER_DENIED"
    assert entry.resource_type == "user"
    assert entry.resource_id == target_id
    assert entry.details == {"reason": "Insufficient permissions"}
    assert entry.created_at is not None


def test_record_failure_is_not_raised(db_session, new_user_id):
    AuditLog.__table__.drop(bind=db_session.get_bind())

    written = record(
        db_session,
        actor_id=new_user_id(),
        action=AuditAction.DELETE_USER_FAILED,
        resource_type="user",
    )

    assert written is False
