"""Issue tracker: reporting, triage, assignment."""

import pytest

from modules.admin.permissions import resolve_permissions
from modules.issue.models import Issue
from modules.issue.service import ISSUE_TRANSITIONS, IssueFilter, issue_service
from factories import audit_rows, login, make_issue, make_order, make_profile


@pytest.fixture
def admin_perms(db, admin_user):
    return resolve_permissions(db, admin_user.id)


def fresh(db, issue_id):
    db.expire_all()
    return db.get(Issue, issue_id)


# ==========================================
# Reporting
# ==========================================

def test_customer_reports_complaint_on_own_order(db, customer, customer_perms, product):
    order = make_order(db, customer, product)

    result = issue_service.create_issue(db, customer_perms, {
        "type": "complaint",
        "title": "  Wrong shade delivered ",
        "description": "Ordered Ivory, got Sand.",
        "customer_order_id": order.id,
    })

    assert result["success"] is True
    assert result["message"] == "Issue created successfully"
    issue = fresh(db, result["data"]["issue_id"])
    assert issue.title == "Wrong shade delivered"
    assert issue.status == "reported"
    assert issue.priority == "medium"
    assert issue.reported_by == customer.id
    [row] = audit_rows(db, resource_id=issue.id, action="issue_created")
    assert row.changes == {"title": "Wrong shade delivered", "type": "complaint"}


def test_customer_cannot_cite_someone_elses_order(db, customer_perms, product):
    other = make_profile(db, "customer", email="other@example.com")
    order = make_order(db, other, product)

    result = issue_service.create_issue(db, customer_perms, {
        "type": "complaint", "title": "Late", "description": "Still waiting",
        "customer_order_id": order.id,
    })

    assert result == {"success": False, "error": "Order not found", "code": "not_found"}
    assert db.query(Issue).count() == 0


@pytest.mark.parametrize("overrides, message", [
    ({"type": "question"}, "Unknown issue type: question"),
    ({"title": "   "}, "Issue title is required"),
    ({"title": "x" * 201}, "Issue title must be at most 200 characters"),
    ({"description": ""}, "Issue description is required"),
    ({"priority": "urgent"}, "Unknown priority: urgent"),
])
def test_report_validation(db, customer_perms, overrides, message):
    data = {"type": "bug", "title": "Checkout button", "description": "Does nothing", **overrides}

    result = issue_service.create_issue(db, customer_perms, data)

    assert result["code"] == "validation"
    assert result["error"] == message


def test_reporting_requires_sign_in(db):
    result = issue_service.create_issue(db, None, {"type": "bug", "title": "t", "description": "d"})
    assert result["code"] == "not_authenticated"


# ==========================================
# Triage
# ==========================================

def test_agents_cannot_triage(db, agent_perms, customer):
    issue = make_issue(db, customer)

    assert issue_service.list_issues(db, agent_perms)["code"] == "forbidden"
    assert issue_service.update_issue_status(db, agent_perms, issue.id, "pending")["code"] == "forbidden"
    assert fresh(db, issue.id).status == "reported"


def test_list_filters(db, admin_perms, customer):
    make_issue(db, customer, type="bug", priority="high")
    make_issue(db, customer, type="complaint", priority="high", status="solved")
    make_issue(db, customer, type="feature_request", priority="low")

    high = issue_service.list_issues(db, admin_perms, IssueFilter(priority="high"))
    open_bugs = issue_service.list_issues(db, admin_perms, IssueFilter(type="bug", status="reported"))
    bad = issue_service.list_issues(db, admin_perms, IssueFilter(status="archived"))

    assert len(high["data"]["issues"]) == 2
    assert [i["type"] for i in open_bugs["data"]["issues"]] == ["bug"]
    assert bad == {"success": False, "error": "Unknown status: archived", "code": "validation"}


@pytest.mark.parametrize("current", ["reported", "pending", "solved", "closed"])
@pytest.mark.parametrize("target", ["reported", "pending", "solved", "closed"])
def test_status_moves_follow_table(db, admin_perms, customer, current, target):
    from modules.issue.models import IssueStatus

    issue = make_issue(db, customer, status=current)
    allowed = IssueStatus(target) in ISSUE_TRANSITIONS[IssueStatus(current)]

    result = issue_service.update_issue_status(db, admin_perms, issue.id, target)

    assert result["success"] is allowed
    assert fresh(db, issue.id).status == (target if allowed else current)
    assert len(audit_rows(db, resource_id=issue.id, action="issue_status_updated")) == int(allowed)


def test_solving_stamps_resolver_and_reopening_clears_it(db, admin_perms, admin_user, customer):
    issue = make_issue(db, customer, status="pending")

    issue_service.update_issue_status(db, admin_perms, issue.id, "solved")
    solved = fresh(db, issue.id)
    assert solved.resolved_by == admin_user.id
    assert solved.resolved_at is not None

    issue_service.update_issue_status(db, admin_perms, issue.id, "pending")
    reopened = fresh(db, issue.id)
    assert reopened.resolved_by is None
    assert reopened.resolved_at is None


def test_closed_issue_is_final(db, admin_perms, customer):
    issue = make_issue(db, customer, status="closed")

    result = issue_service.update_issue_status(db, admin_perms, issue.id, "pending")

    assert result["error"] == "Invalid status transition from closed to pending"


def test_priority_update(db, admin_perms, customer):
    issue = make_issue(db, customer)

    assert issue_service.update_issue_priority(db, admin_perms, issue.id, "critical")["message"] == "Issue priority updated"
    assert fresh(db, issue.id).priority == "critical"
    [row] = audit_rows(db, resource_id=issue.id, action="issue_priority_updated")
    assert row.changes == {"old_priority": "medium", "new_priority": "critical"}

    assert issue_service.update_issue_priority(db, admin_perms, issue.id, "critical")["error"] == "Issue priority is already critical"
    assert issue_service.update_issue_priority(db, admin_perms, issue.id, "someday")["code"] == "validation"


def test_missing_issue(db, admin_perms):
    result = issue_service.update_issue_priority(db, admin_perms, "no-such-issue", "low")
    assert result == {"success": False, "error": "Issue not found", "code": "not_found"}


# ==========================================
# Assignment / deletion
# ==========================================

def test_chief_assigns_reported_issue(db, chief_perms, admin_user, customer):
    issue = make_issue(db, customer)

    result = issue_service.assign_issue(db, chief_perms, issue.id, admin_user.id)

    assert result == {"success": True, "message": "Issue assigned successfully"}
    assigned = fresh(db, issue.id)
    assert assigned.assigned_to == admin_user.id
    assert assigned.status == "pending"
    [row] = audit_rows(db, resource_id=issue.id, action="issue_assigned")
    assert row.changes["new_status"] == "pending"


def test_assignment_keeps_later_status(db, chief_perms, admin_user, customer):
    issue = make_issue(db, customer, status="solved")

    issue_service.assign_issue(db, chief_perms, issue.id, admin_user.id)

    assert fresh(db, issue.id).status == "solved"


def test_admin_cannot_assign(db, admin_perms, admin_user, customer):
    issue = make_issue(db, customer)

    result = issue_service.assign_issue(db, admin_perms, issue.id, admin_user.id)

    assert result["error"] == "Only chief admin can assign or delete issues"
    assert fresh(db, issue.id).assigned_to is None


def test_assignee_must_be_active_admin(db, chief_perms, agent, customer):
    issue = make_issue(db, customer)
    retired = make_profile(db, "admin", email="retired@example.com", is_active=False)

    for assignee in (agent.id, customer.id, retired.id, "nobody"):
        result = issue_service.assign_issue(db, chief_perms, issue.id, assignee)
        assert result["error"] == "Issues can only be assigned to active admins"
    assert audit_rows(db, action="issue_assigned") == []


def test_closed_issue_cannot_be_assigned(db, chief_perms, admin_user, customer):
    issue = make_issue(db, customer, status="closed")
    assert issue_service.assign_issue(db, chief_perms, issue.id, admin_user.id)["error"] == "Cannot assign a closed issue"


def test_delete_issue(db, chief_perms, admin_perms, customer):
    issue = make_issue(db, customer)

    assert issue_service.delete_issue(db, admin_perms, issue.id)["code"] == "forbidden"
    assert issue_service.delete_issue(db, chief_perms, issue.id)["message"] == "Issue deleted successfully"

    assert fresh(db, issue.id) is None
    [row] = audit_rows(db, resource_id=issue.id, action="issue_deleted")
    assert row.changes["title"] == "Parcel arrived damaged"


# ==========================================
# HTTP
# ==========================================

def test_customer_reports_over_http(client, db, customer):
    login(client, customer)

    response = client.post("/shop/issues", json={
        "type": "feature_request", "title": "Gift wrapping", "description": "Please add it",
        "priority": "critical",
    })

    assert response.status_code == 201
    issue = fresh(db, response.json()["data"]["issue_id"])
    assert issue.priority == "medium"


def test_agents_kept_off_issue_pages(client, db, agent):
    login(client, agent)

    response = client.get("/admin/issues", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/admin/dashboard"


def test_admin_triages_over_http(client, db, admin_user, customer):
    issue = make_issue(db, customer)
    login(client, admin_user)

    assert client.get("/admin/issues").json()["data"]["issues"][0]["id"] == issue.id
    response = client.post(f"/admin/issues/{issue.id}/status", data={"status": "solved"})

    assert response.status_code == 200
    assert fresh(db, issue.id).status == "solved"
