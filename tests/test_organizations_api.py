from app.models import EmailLog, Organization, User


def test_onboarding_creates_organization(client, db, make_user, login):
    user = login(make_user(role="group_leader", email="founder@example.com"))

    response = client.post("/organizations", json={"name": "  Holy Family Parish ", "subscriptionTier": "parish"})

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Holy Family Parish"
    assert body["contactEmail"] == "founder@example.com"
    assert body["usage"]["eventsRemaining"] == 5

    db.refresh(user)
    assert user.organization_id == body["id"]
    assert user.role == "org_admin"


def test_onboarding_twice_conflicts(client, admin):
    response = client.post("/organizations", json={"name": "Second Parish"})
    assert response.status_code == 409


def test_onboarding_rejects_unknown_tier(client, make_user, login):
    login(make_user(role="group_leader"))
    response = client.post("/organizations", json={"name": "Parish", "subscriptionTier": "platinum"})
    assert response.status_code == 422


def test_get_and_update_my_organization(client, admin, organization):
    response = client.get("/organizations/me")
    assert response.status_code == 200
    assert response.json()["subscriptionTier"] == "cathedral"
    assert response.json()["usage"]["limits"]["modules"] is True

    updated = client.patch("/organizations/me", json={"name": "St. Anne Parish Youth"})
    assert updated.status_code == 200
    assert updated.json()["name"] == "St. Anne Parish Youth"


def test_digest_settings(client, admin):
    response = client.patch(
        "/organizations/me/digest",
        json={"enabled": False, "recipients": ["dre@stanne.org", " "]},
    )

    assert response.status_code == 200
    assert response.json()["weeklyDigestEnabled"] is False
    assert response.json()["weeklyDigestRecipients"] == ["dre@stanne.org"]


def test_tier_change_requires_master_admin(client, admin, organization):
    response = client.patch(f"/organizations/{organization.id}/tier", json={"subscriptionTier": "basilica"})
    assert response.status_code == 403


def test_master_admin_changes_tier(client, db, organization, make_user, login):
    login(make_user(organization, role="master_admin"))

    response = client.patch(f"/organizations/{organization.id}/tier", json={"subscriptionTier": "basilica"})

    assert response.status_code == 200
    assert response.json()["usage"]["eventsRemaining"] is None
    db.refresh(organization)
    assert organization.subscription_tier == "basilica"


def test_invite_team_member(client, db, admin):
    response = client.post(
        "/organizations/me/team",
        json={"email": "finance@stanne.org", "role": "finance_manager", "fullName": "Fran Finance"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "finance_manager"
    assert body["hasSignedIn"] is False

    member = db.query(User).filter(User.email == "finance@stanne.org").one()
    assert member.organization_id == admin.organization_id

    log = db.query(EmailLog).filter(EmailLog.email_type == "team_invitation").one()
    assert log.recipient_email == "finance@stanne.org"

    team = client.get("/organizations/me/team")
    assert {m["email"] for m in team.json()} == {"admin@stanne.org", "finance@stanne.org"}


def test_invite_rejects_non_staff_role(client, admin):
    response = client.post("/organizations/me/team", json={"email": "kid@example.com", "role": "group_leader"})
    assert response.status_code == 422


def test_invite_member_of_other_organization(client, db, admin, make_user):
    other = Organization(name="Other Parish", subscription_tier="starter")
    db.add(other)
    db.commit()
    make_user(other, email="taken@example.com")

    response = client.post("/organizations/me/team", json={"email": "taken@example.com", "role": "staff"})
    assert response.status_code == 409


def test_update_and_remove_member(client, db, admin, organization, make_user):
    member = make_user(organization, role="staff")

    updated = client.patch(
        f"/organizations/me/team/{member.id}",
        json={"role": "event_manager", "permissions": {"payments.view": True}},
    )
    assert updated.status_code == 200
    assert updated.json()["role"] == "event_manager"
    assert updated.json()["permissions"] == {"payments.view": True}

    removed = client.delete(f"/organizations/me/team/{member.id}")
    assert removed.status_code == 200
    db.refresh(member)
    assert member.organization_id is None


def test_cannot_remove_yourself(client, admin):
    response = client.delete(f"/organizations/me/team/{admin.id}")
    assert response.status_code == 400


def test_staff_cannot_manage_team(client, organization, make_user, login):
    login(make_user(organization, role="staff"))
    response = client.post("/organizations/me/team", json={"email": "x@example.com", "role": "staff"})
    assert response.status_code == 403
