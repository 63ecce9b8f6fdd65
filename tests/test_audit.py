"""Audit log writer and reader."""

from datetime import datetime, timedelta, timezone

from modules.admin.audit_service import audit_service
from modules.admin.models import AdminActivityLog
from modules.order.service import order_service
from factories import make_order


def test_reads_are_stable_without_mutation(db, agent_perms, customer, product):
    order = make_order(db, customer, product)
    order_service.transition_status(db, agent_perms, order.id, "confirmed")

    first = audit_service.list_logs(db, agent_perms)
    second = audit_service.list_logs(db, agent_perms)

    assert first == second
    assert first["success"] is True


def test_each_successful_mutation_adds_one_row(db, agent_perms, customer, product):
    order = make_order(db, customer, product, payment_status="completed")

    for target in ("confirmed", "shipped", "delivered"):
        before = len(audit_service.get_logs(db, resource_id=order.id))
        order_service.transition_status(db, agent_perms, order.id, target)
        assert len(audit_service.get_logs(db, resource_id=order.id)) == before + 1

    before = len(audit_service.get_logs(db, resource_id=order.id))
    order_service.process_refund(db, agent_perms, order.id)
    assert len(audit_service.get_logs(db, resource_id=order.id)) == before + 1


def test_logs_newest_first_and_limited(db, agent):
    start = datetime(2026, 3, 1, tzinfo=timezone.utc)
    for i in range(5):
        entry = audit_service.record(db, agent.id, f"action_{i}", "test", str(i))
        entry.created_at = start + timedelta(minutes=i)
    db.commit()

    logs = audit_service.get_logs(db, limit=3)

    assert [log.action for log in logs] == ["action_4", "action_3", "action_2"]


def test_list_logs_requires_capability(db, customer_perms):
    assert audit_service.list_logs(db, customer_perms)["code"] == "forbidden"
    assert audit_service.list_logs(db, None)["code"] == "not_authenticated"


def test_best_effort_never_raises():
    def broken_factory():
        raise RuntimeError("database unavailable")

    assert audit_service.record_best_effort(broken_factory, "someone", "page_access") is False


def test_best_effort_writes_in_own_session(db, agent):
    from config.database import SessionLocal

    ok = audit_service.record_best_effort(
        SessionLocal, agent.id, "page_access",
        resource_type="admin_page", changes={"path": "/admin/orders"},
    )

    assert ok is True
    db.expire_all()
    row = db.query(AdminActivityLog).filter(AdminActivityLog.action == "page_access").one()
    assert row.changes == {"path": "/admin/orders"}
