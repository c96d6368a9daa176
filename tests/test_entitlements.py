"""
Tests for the entitlement gate and GET /me/entitlements.
"""
from datetime import datetime, timedelta, timezone

import pytest

from clmp.db.models import Project, ProjectMember, Subscription
from clmp.services.entitlement_service import get_entitlements


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def add_project(db, owner_id, status="active", members=()):
    project = Project(name="Site build", created_by=owner_id, status=status)
    db.add(project)
    db.flush()
    for member_id in members:
        db.add(ProjectMember(project_id=project.id, user_id=member_id))
    db.commit()
    return project


def test_defaults_without_profile(db_session, new_user_id):
    ent = get_entitlements(db_session, new_user_id(), now=NOW)

    assert ent["plan"] == "trial"
    assert ent["status"] == "active"
    assert ent["max_projects"] == 3
    assert ent["max_users"] == 10
    assert ent["current_projects"] == 0
    assert ent["can_create_project"] is True
    assert ent["has_subscription"] is False
    assert ent["is_trialing"] is False
    assert ent["trial_days_left"] == 0


@pytest.mark.parametrize("plan, max_projects, max_users", [
    ("free", 1, 5),
    ("standard", 10, 25),
    ("professional", 10, 25),
    ("enterprise", 20, 100),
    ("platinum", 3, 10),
])
def test_plan_limits_applied(db_session, new_user_id, create_profile, plan, max_projects, max_users):
    user_id = new_user_id()
    create_profile(user_id, subscription_plan=plan, subscription_status="active")

    ent = get_entitlements(db_session, user_id, now=NOW)

    assert ent["plan"] == plan
    assert (ent["max_projects"], ent["max_users"]) == (max_projects, max_users)


def test_usage_counts(db_session, new_user_id, create_profile):
    user_id = new_user_id()
    create_profile(user_id, subscription_plan="free", subscription_status="active")
    member_a, member_b = new_user_id(), new_user_id()
    add_project(db_session, user_id, members=[member_a, member_b])
    add_project(db_session, user_id, status="archived", members=[new_user_id()])

    ent = get_entitlements(db_session, user_id, now=NOW)

    assert ent["current_projects"] == 1
    assert ent["current_users"] == 2
    assert ent["can_create_project"] is False
    assert ent["can_add_user"] is True


def test_members_counted_once_across_projects(db_session, new_user_id, create_profile):
    user_id, member_id = new_user_id(), new_user_id()
    create_profile(user_id, subscription_plan="standard", subscription_status="active")
    add_project(db_session, user_id, members=[member_id])
    add_project(db_session, user_id, members=[member_id])

    ent = get_entitlements(db_session, user_id, now=NOW)

    assert ent["current_projects"] == 2
    assert ent["current_users"] == 1


def test_inactive_status_blocks_creation(db_session, new_user_id, create_profile):
    user_id = new_user_id()
    create_profile(user_id, subscription_plan="standard", subscription_status="past_due")

    ent = get_entitlements(db_session, user_id, now=NOW)

    assert ent["can_create_project"] is False
    assert ent["can_add_user"] is False


def test_pending_status(db_session, new_user_id, create_profile):
    user_id = new_user_id()
    create_profile(user_id, subscription_status="pending")

    assert get_entitlements(db_session, user_id, now=NOW)["is_pending"] is True


def test_active_trial(db_session, new_user_id, create_profile):
    user_id = new_user_id()
    create_profile(user_id, subscription_plan="trial", trial_end_date=NOW + timedelta(days=2, hours=12))

    ent = get_entitlements(db_session, user_id, now=NOW)

    assert ent["is_trialing"] is True
    assert ent["trial_days_left"] == 3
    assert ent["trial_end_date"] == NOW + timedelta(days=2, hours=12)


def test_expired_trial(db_session, new_user_id, create_profile):
    user_id = new_user_id()
    create_profile(user_id, subscription_plan="trial", trial_end_date=NOW - timedelta(days=1))

    ent = get_entitlements(db_session, user_id, now=NOW)

    assert ent["is_trialing"] is False
    assert ent["trial_days_left"] == 0


def test_subscription_record(db_session, new_user_id, create_profile):
    user_id = new_user_id()
    period_end = datetime(2026, 4, 1, tzinfo=timezone.utc)
    create_profile(user_id, subscription_plan="enterprise", subscription_status="active")
    db_session.add(Subscription(user_id=user_id, plan="enterprise", status="active", current_period_end=period_end))
    db_session.commit()

    ent = get_entitlements(db_session, user_id, now=NOW)

    assert ent["has_subscription"] is True
    assert ent["current_period_end"] == period_end


def test_entitlements_endpoint(client, new_user_id, auth_headers, create_profile):
    user_id = new_user_id()
    create_profile(user_id, subscription_plan="standard", subscription_status="active")

    response = client.get("/me/entitlements", headers=auth_headers(user_id))

    assert response.status_code == 200
    body = response.json()
    assert body["plan"] == "standard"
    assert body["max_projects"] == 10
    assert body["can_create_project"] is True


def test_entitlements_requires_auth(client):
    response = client.get("/me/entitlements")

    assert response.status_code == 401
    assert response.json() == {"error": "Missing authorization header"}
