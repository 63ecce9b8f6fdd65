"""
Issue Module - Service Layer
==============================
Bug reports, complaints and feature requests.

Any signed-in principal may report an issue. Triage (listing, status and
priority changes) needs manage_issues (admin and above); assignment and
deletion need assign_issues (chief admin). Status moves follow
ISSUE_TRANSITIONS and are written with the same conditional UPDATE as
orders, so two admins cannot both act on a stale status.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from common.exceptions import (
    admin_action, action_ok, AuthenticationError, ValidationError, NotFoundError,
    ConcurrencyError, InvalidTransitionError,
)
from common.helpers import now_utc
from common.revalidation import revalidate_path
from modules.admin.audit_service import audit_service
from modules.admin.permissions import (
    Capability, PermissionSet, Role, capabilities_for, require_capability,
)
from modules.issue.models import Issue, IssueType, IssueStatus, IssuePriority
from modules.order.models import Order, parse_enum
from modules.user.models import Profile

logger = logging.getLogger("jradiance.issues")

ISSUE_TRANSITIONS = {
    IssueStatus.REPORTED: frozenset({IssueStatus.PENDING, IssueStatus.SOLVED, IssueStatus.CLOSED}),
    IssueStatus.PENDING: frozenset({IssueStatus.SOLVED, IssueStatus.CLOSED}),
    IssueStatus.SOLVED: frozenset({IssueStatus.PENDING, IssueStatus.CLOSED}),
    IssueStatus.CLOSED: frozenset(),
}

ISSUE_PAGES = ("/admin/issues",)

MAX_TITLE_LENGTH = 200


@dataclass(frozen=True)
class IssueFilter:
    status: Optional[str] = None
    type: Optional[str] = None
    priority: Optional[str] = None
    offset: int = 0
    limit: Optional[int] = None


def _require_enum(enum_cls, value, label: str):
    member = parse_enum(enum_cls, value)
    if member is None:
        raise ValidationError(f"Unknown {label}: {value}")
    return member


class IssueService:

    # ==========================================
    # Query
    # ==========================================

    def get_by_id(self, db: Session, issue_id: str) -> Optional[Issue]:
        return db.query(Issue).filter(Issue.id == issue_id).first()

    def get_issues(self, db: Session, filters: IssueFilter = None) -> List[Issue]:
        filters = filters or IssueFilter()
        q = db.query(Issue)
        if filters.status:
            q = q.filter(Issue.status == _require_enum(IssueStatus, filters.status, "status").value)
        if filters.type:
            q = q.filter(Issue.type == _require_enum(IssueType, filters.type, "issue type").value)
        if filters.priority:
            q = q.filter(Issue.priority == _require_enum(IssuePriority, filters.priority, "priority").value)
        q = q.order_by(Issue.created_at.desc())
        if filters.limit:
            q = q.offset(max(0, filters.offset)).limit(filters.limit)
        return q.all()

    @admin_action("Failed to fetch issues")
    def list_issues(self, db: Session, perms: Optional[PermissionSet], filters: IssueFilter = None) -> dict:
        require_capability(perms, Capability.MANAGE_ISSUES)
        return action_ok(issues=[i.to_dict() for i in self.get_issues(db, filters)])

    @admin_action("Failed to fetch issue")
    def get_issue(self, db: Session, perms: Optional[PermissionSet], issue_id: str) -> dict:
        require_capability(perms, Capability.MANAGE_ISSUES)
        return action_ok(issue=self._load(db, issue_id).to_dict())

    # ==========================================
    # Report
    # ==========================================

    @admin_action("Failed to create issue")
    def create_issue(self, db: Session, perms: Optional[PermissionSet], data: dict) -> dict:
        """Open a new issue in the `reported` state. Customers may only cite their own orders."""
        if perms is None:
            raise AuthenticationError()

        issue_type = _require_enum(IssueType, data.get("type"), "issue type")
        title = (data.get("title") or "").strip()
        description = (data.get("description") or "").strip()
        if not title:
            raise ValidationError("Issue title is required")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationError(f"Issue title must be at most {MAX_TITLE_LENGTH} characters")
        if not description:
            raise ValidationError("Issue description is required")
        priority = _require_enum(IssuePriority, data.get("priority") or IssuePriority.MEDIUM, "priority")

        order_id = data.get("customer_order_id") or None
        if order_id:
            q = db.query(Order.id).filter(Order.id == order_id)
            if perms.role is None or perms.role == Role.CUSTOMER:
                q = q.filter(Order.user_id == perms.principal_id)
            if q.first() is None:
                raise NotFoundError("Order not found")

        issue = Issue(
            type=issue_type.value,
            title=title,
            description=description,
            priority=priority.value,
            status=IssueStatus.REPORTED.value,
            reported_by=perms.principal_id,
            customer_email=(data.get("customer_email") or "").strip() or None,
            customer_order_id=order_id,
        )
        db.add(issue)
        db.flush()

        audit_service.record(
            db, perms.principal_id, "issue_created", "issue", issue.id,
            {"title": title, "type": issue_type.value},
        )
        db.commit()
        logger.info(f"Issue {issue.id} ({issue_type.value}) reported by {perms.principal_id}")
        revalidate_path(*ISSUE_PAGES)
        return action_ok("Issue created successfully", issue_id=issue.id)

    # ==========================================
    # Triage
    # ==========================================

    @admin_action("Failed to update issue")
    def update_issue_status(
        self, db: Session, perms: Optional[PermissionSet], issue_id: str, new_status: str,
    ) -> dict:
        """
        Move an issue along ISSUE_TRANSITIONS. Solving stamps resolved_by and
        resolved_at; reopening a solved issue clears them.
        """
        require_capability(perms, Capability.MANAGE_ISSUES)

        issue = self._load(db, issue_id)
        current = IssueStatus(issue.status)
        target = parse_enum(IssueStatus, new_status)
        if target is None or target not in ISSUE_TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, str(new_status))

        values = {"status": target.value}
        if target == IssueStatus.SOLVED:
            values["resolved_by"] = perms.principal_id
            values["resolved_at"] = now_utc()
        elif current == IssueStatus.SOLVED and target == IssueStatus.PENDING:
            values["resolved_by"] = None
            values["resolved_at"] = None

        self._swap(db, issue, {"status": current.value}, values)

        audit_service.record(
            db, perms.principal_id, "issue_status_updated", "issue", issue.id,
            {"old_status": current.value, "new_status": target.value},
        )
        db.commit()
        logger.info(f"Issue {issue_id}: {current.value} -> {target.value} by {perms.principal_id}")
        revalidate_path(*ISSUE_PAGES)
        return action_ok("Issue status updated")

    @admin_action("Failed to update priority")
    def update_issue_priority(
        self, db: Session, perms: Optional[PermissionSet], issue_id: str, new_priority: str,
    ) -> dict:
        require_capability(perms, Capability.MANAGE_ISSUES)

        priority = _require_enum(IssuePriority, new_priority, "priority")
        issue = self._load(db, issue_id)
        old_priority = issue.priority
        if old_priority == priority.value:
            raise ValidationError(f"Issue priority is already {priority.value}")

        self._swap(db, issue, {"priority": old_priority}, {"priority": priority.value})

        audit_service.record(
            db, perms.principal_id, "issue_priority_updated", "issue", issue.id,
            {"old_priority": old_priority, "new_priority": priority.value},
        )
        db.commit()
        revalidate_path(*ISSUE_PAGES)
        return action_ok("Issue priority updated")

    @admin_action("Failed to assign issue")
    def assign_issue(
        self, db: Session, perms: Optional[PermissionSet], issue_id: str, assignee_id: str,
    ) -> dict:
        """Hand an issue to an active admin. A freshly reported issue moves to pending."""
        require_capability(perms, Capability.ASSIGN_ISSUES)

        issue = self._load(db, issue_id)
        current = IssueStatus(issue.status)
        if current == IssueStatus.CLOSED:
            raise ValidationError("Cannot assign a closed issue")

        assignee = db.query(Profile).filter(Profile.id == assignee_id).first()
        if (
            assignee is None
            or not assignee.is_active
            or Capability.MANAGE_ISSUES not in capabilities_for(assignee.role)
        ):
            raise ValidationError("Issues can only be assigned to active admins")
        if issue.assigned_to == assignee.id:
            raise ValidationError("Issue is already assigned to this admin")

        old_assignee = issue.assigned_to
        values = {"assigned_to": assignee.id}
        if current == IssueStatus.REPORTED:
            values["status"] = IssueStatus.PENDING.value
        self._swap(db, issue, {"status": current.value}, values)

        audit_service.record(
            db, perms.principal_id, "issue_assigned", "issue", issue.id,
            {
                "old_assigned_to": old_assignee,
                "assigned_to": assignee.id,
                "old_status": current.value,
                "new_status": values.get("status", current.value),
            },
        )
        db.commit()
        logger.info(f"Issue {issue_id} assigned to {assignee.email} by {perms.principal_id}")
        revalidate_path(*ISSUE_PAGES)
        return action_ok("Issue assigned successfully")

    @admin_action("Failed to delete issue")
    def delete_issue(self, db: Session, perms: Optional[PermissionSet], issue_id: str) -> dict:
        require_capability(perms, Capability.ASSIGN_ISSUES)

        issue = self._load(db, issue_id)
        snapshot = {"title": issue.title, "type": issue.type, "status": issue.status}
        db.delete(issue)
        db.flush()

        audit_service.record(db, perms.principal_id, "issue_deleted", "issue", issue_id, snapshot)
        db.commit()
        logger.info(f"Issue {issue_id} deleted by {perms.principal_id}")
        revalidate_path(*ISSUE_PAGES)
        return action_ok("Issue deleted successfully")

    # ==========================================
    # Private Helpers
    # ==========================================

    def _load(self, db: Session, issue_id: str) -> Issue:
        issue = (
            db.query(Issue)
            .filter(Issue.id == issue_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if not issue:
            raise NotFoundError("Issue not found")
        return issue

    def _swap(self, db: Session, issue: Issue, expected: dict, values: dict) -> None:
        criteria = [getattr(Issue, col) == val for col, val in expected.items()]
        changes = {getattr(Issue, col): val for col, val in values.items()}
        changes[Issue.updated_at] = now_utc()

        updated = db.query(Issue).filter(Issue.id == issue.id, *criteria).update(changes)
        if updated != 1:
            raise ConcurrencyError("Issue was modified by another user. Please reload and try again.")


issue_service = IssueService()
