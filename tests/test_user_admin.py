"""Chief-admin user management."""

import pytest

from modules.order.models import Order
from modules.user.admin_service import user_admin_service
from modules.user.models import Profile
from factories import audit_rows, make_order, make_profile


def role_of(db, profile_id):
    db.expire_all()
    return db.query(Profile.role).filter(Profile.id == profile_id).scalar()


def test_agent_cannot_promote(db, agent_perms, customer):
    result = user_admin_service.promote_user(db, agent_perms, customer.id, "admin")

    assert result == {
        "success": False, "error": "Only chief admin can manage users", "code": "forbidden",
    }
    assert role_of(db, customer.id) == "customer"
    assert audit_rows(db) == []


def test_unauthenticated_cannot_promote(db, customer):
    result = user_admin_service.promote_user(db, None, customer.id, "agent")
    assert result["code"] == "not_authenticated"


@pytest.mark.parametrize("new_role", ["agent", "admin", "chief_admin"])
def test_chief_promotes_customer(db, chief_perms, chief, customer, new_role):
    result = user_admin_service.promote_user(db, chief_perms, customer.id, new_role)

    assert result == {"success": True, "message": f"User promoted to {new_role}"}
    assert role_of(db, customer.id) == new_role
    [row] = audit_rows(db, resource_id=customer.id, action="user_promoted")
    assert row.admin_id == chief.id
    assert row.changes == {"old_role": "customer", "new_role": new_role}


@pytest.mark.parametrize("bad_role", ["customer", "superuser", None])
def test_promote_rejects_non_staff_roles(db, chief_perms, customer, bad_role):
    result = user_admin_service.promote_user(db, chief_perms, customer.id, bad_role)

    assert result["code"] == "validation"
    assert result["error"] == "Role must be agent, admin or chief_admin"


def test_promote_same_role_rejected(db, chief_perms, agent):
    result = user_admin_service.promote_user(db, chief_perms, agent.id, "agent")
    assert result["error"] == "User is already agent"


def test_chief_cannot_change_own_role(db, chief_perms, chief):
    result = user_admin_service.promote_user(db, chief_perms, chief.id, "admin")

    assert result["error"] == "You cannot change your own role"
    assert role_of(db, chief.id) == "chief_admin"

    assert user_admin_service.demote_user(db, chief_perms, chief.id)["error"] == "You cannot demote yourself"


def test_missing_user(db, chief_perms):
    result = user_admin_service.promote_user(db, chief_perms, "no-such-user", "agent")
    assert result == {"success": False, "error": "User not found", "code": "not_found"}


def test_demote_staff_to_customer(db, chief_perms, admin_user):
    result = user_admin_service.demote_user(db, chief_perms, admin_user.id)

    assert result == {"success": True, "message": "User demoted to customer"}
    assert role_of(db, admin_user.id) == "customer"
    [row] = audit_rows(db, resource_id=admin_user.id, action="user_demoted")
    assert row.changes == {"old_role": "admin", "new_role": "customer"}


def test_demote_customer_rejected(db, chief_perms, customer):
    result = user_admin_service.demote_user(db, chief_perms, customer.id)
    assert result["error"] == "User is already a customer"
    assert audit_rows(db) == []


def test_toggle_status_round_trip(db, chief_perms, customer):
    assert user_admin_service.toggle_user_status(db, chief_perms, customer.id)["message"] == "User deactivated"
    db.expire_all()
    assert db.get(Profile, customer.id).is_active is False

    assert user_admin_service.toggle_user_status(db, chief_perms, customer.id)["message"] == "User activated"
    actions = [row.action for row in audit_rows(db, resource_id=customer.id)]
    assert sorted(actions) == ["user_activated", "user_deactivated"]


def test_cannot_deactivate_self(db, chief_perms, chief):
    result = user_admin_service.toggle_user_status(db, chief_perms, chief.id)
    assert result["error"] == "You cannot deactivate your own account"


def test_delete_user_removes_their_orders(db, chief_perms, customer, product):
    order = make_order(db, customer, product)

    result = user_admin_service.delete_user(db, chief_perms, customer.id)

    assert result == {"success": True, "message": "User deleted successfully"}
    db.expire_all()
    assert db.get(Profile, customer.id) is None
    assert db.get(Order, order.id) is None
    [row] = audit_rows(db, resource_id=customer.id, action="user_deleted")
    assert row.changes == {"email": "customer@example.com", "role": "customer"}


def test_cannot_delete_self(db, chief_perms, chief):
    assert user_admin_service.delete_user(db, chief_perms, chief.id)["error"] == "You cannot delete your own account"


def test_listings(db, chief_perms, agent_perms, agent, customer):
    make_profile(db, "agent", email="second.agent@example.com")

    users = user_admin_service.list_users(db, chief_perms)
    agents = user_admin_service.list_agents(db, chief_perms)

    assert len(users["data"]["users"]) == 4
    assert {a["email"] for a in agents["data"]["agents"]} == {"agent@example.com", "second.agent@example.com"}
    assert user_admin_service.list_agents(db, agent_perms)["error"] == "Only chief admin can manage agents"


def test_promote_route(client, db, chief, customer):
    from factories import login

    login(client, chief)
    response = client.post(f"/admin/users/{customer.id}/promote", data={"role": "agent"})

    assert response.status_code == 200
    assert response.json()["message"] == "User promoted to agent"
    assert role_of(db, customer.id) == "agent"
