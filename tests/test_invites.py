import re
from datetime import timedelta

import pytest
from app.config import settings
from app.core.exceptions import InviteExhaustedException
from app.models.base import utc_now
from app.models.invite_code import InviteCode
from app.models.role import TenantRole
from app.models.tenant import Tenant
from app.models.tenant_membership import TenantMembership
from app.models.user import User
from app.repositories.tenant_membership_repository import TenantMembershipRepository
from app.services.invite_service import InviteService, generate_invite_code, normalize_invite_code
from tests.conftest import create_invite, register_user, bearer, DEFAULT_PASSWORD


def get_invite(db_session, code: str) -> InviteCode:
    db_session.expire_all()
    return db_session.query(InviteCode).filter(InviteCode.code == code).one()


class TestInviteCodeFormat:
    """Invite code generation"""

    def test_code_format(self):
        """16 uppercase hex characters in groups of four"""
        code = generate_invite_code()
        assert re.fullmatch(r"[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}", code)

    def test_codes_are_random(self):
        """Consecutive codes differ"""
        assert len({generate_invite_code() for _ in range(50)}) == 50

    def test_normalize(self):
        """Typed codes are trimmed and upper-cased"""
        assert normalize_invite_code("  ab12-cd34 ") == "AB12-CD34"


class TestCreateInvite:
    """Tests for POST /api/tenants/me/invites"""

    def test_admin_creates_invite(self, client, admin_a):
        """Admin gets a single-use code expiring in 7 days by default"""
        response = client.post("/api/tenants/me/invites", headers=admin_a["headers"], json={})

        assert response.status_code == 201
        data = response.json()
        assert data["max_uses"] == 1
        assert data["current_uses"] == 0
        assert data["is_active"] is True
        assert len(data["code"]) == 19

    def test_member_cannot_create_invite(self, client, member_b):
        """Members are not admins"""
        response = client.post("/api/tenants/me/invites", headers=member_b["headers"], json={"max_uses": 3})

        assert response.status_code == 403
        assert response.json()["code"] == "NOT_ADMIN"

    def test_tenantless_super_admin_cannot_create_invite(self, client, super_admin):
        """Invites need a concrete tenant"""
        response = client.post("/api/tenants/me/invites", headers=super_admin["headers"], json={})

        assert response.status_code == 403
        assert response.json()["code"] == "NO_TENANT_ACCESS"

    @pytest.mark.parametrize("max_uses", [0, 51])
    def test_max_uses_bounds(self, client, admin_a, max_uses):
        """max_uses must be between 1 and the configured limit"""
        response = client.post(
            "/api/tenants/me/invites", headers=admin_a["headers"], json={"max_uses": max_uses}
        )
        assert response.status_code == 422

    def test_list_and_deactivate(self, client, admin_a):
        """Admin lists invites and deactivates one"""
        code = create_invite(client, admin_a["headers"], max_uses=2)

        listed = client.get("/api/tenants/me/invites", headers=admin_a["headers"])
        assert listed.status_code == 200
        invites = listed.json()
        assert [i["code"] for i in invites] == [code]

        response = client.delete(f"/api/tenants/me/invites/{invites[0]['id']}", headers=admin_a["headers"])
        assert response.status_code == 200
        assert response.json()["is_active"] is False

    def test_cannot_deactivate_other_tenants_invite(self, client, admin_a, outsider_d):
        """Invites of another tenant are not found"""
        create_invite(client, admin_a["headers"])
        invite_id = client.get("/api/tenants/me/invites", headers=admin_a["headers"]).json()[0]["id"]

        response = client.delete(f"/api/tenants/me/invites/{invite_id}", headers=outsider_d["headers"])

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND_OR_DENIED"


class TestRegisterWithInvite:
    """Registration-time redemption"""

    def test_single_use_invite(self, client, db_session, admin_a):
        """B joins A's tenant as MEMBER; C's later attempt is exhausted"""
        code = create_invite(client, admin_a["headers"], max_uses=1)

        bob = register_user(client, "bob@example.com", invite_code=code)
        assert bob["outcome"] == "joined_via_invite"
        assert bob["tenant_id"] == admin_a["tenant_id"]
        assert bob["role"] == "member"
        assert get_invite(db_session, code).current_uses == 1

        carol = register_user(client, "carol@example.com")
        response = client.post("/api/invites/redeem", headers=carol["headers"], json={"code": code})
        assert response.status_code == 409
        assert response.json()["code"] == "EXHAUSTED_USES"

    def test_lowercase_code_is_accepted(self, client, admin_a):
        """Codes are matched after normalization"""
        code = create_invite(client, admin_a["headers"])

        bob = register_user(client, "bob@example.com", invite_code=f" {code.lower()} ")

        assert bob["outcome"] == "joined_via_invite"
        assert bob["tenant_id"] == admin_a["tenant_id"]

    def test_unknown_code_falls_back_to_new_tenant(self, client, db_session, admin_a):
        """An unusable code still registers the user, in a new tenant of their own"""
        data = register_user(client, "bob@example.com", invite_code="0000-0000-0000-0000")

        assert data["outcome"] == "invite_fallback_to_new_tenant"
        assert data["role"] == "admin"
        assert data["tenant_id"] != admin_a["tenant_id"]
        assert db_session.query(Tenant).count() == 2

    def test_exhausted_code_falls_back_and_is_logged(self, client, db_session, admin_a, caplog):
        """The fallback branch is named in the logs"""
        code = create_invite(client, admin_a["headers"], max_uses=1)
        register_user(client, "bob@example.com", invite_code=code)

        with caplog.at_level("WARNING"):
            carol = register_user(client, "carol@example.com", invite_code=code)

        assert carol["outcome"] == "invite_fallback_to_new_tenant"
        assert "InviteFallbackToNewTenant" in caplog.text
        assert get_invite(db_session, code).current_uses == 1

    def test_fake_code_without_key_is_logged(self, client, admin_a, caplog):
        """An unusable code standing in for the registration key is called out"""
        with caplog.at_level("WARNING"):
            data = register_user(client, "mallory@example.com", invite_code="not-a-real-code")

        assert data["outcome"] == "invite_fallback_to_new_tenant"
        assert "admitted without a registration key" in caplog.text

    def test_fake_code_with_key_is_not_flagged(self, client, admin_a, caplog):
        """Registrants holding the key are not reported as bypassing it"""
        with caplog.at_level("WARNING"):
            response = client.post(
                "/api/auth/register",
                json={
                    "email": "erin@example.com",
                    "password": DEFAULT_PASSWORD,
                    "invite_code": "not-a-real-code",
                    "registration_key": settings.REGISTRATION_SECRET,
                },
            )

        assert response.status_code == 201
        assert "InviteFallbackToNewTenant" in caplog.text
        assert "admitted without a registration key" not in caplog.text

    def test_multi_use_invite(self, client, admin_a):
        """A code with max_uses=3 admits exactly three users"""
        code = create_invite(client, admin_a["headers"], max_uses=3)

        outcomes = [
            register_user(client, f"user{i}@example.com", invite_code=code)["outcome"]
            for i in range(4)
        ]

        assert outcomes == [
            "joined_via_invite",
            "joined_via_invite",
            "joined_via_invite",
            "invite_fallback_to_new_tenant",
        ]


class TestRedeemInvite:
    """Tests for POST /api/invites/redeem"""

    def test_redeem_joins_tenant(self, client, admin_a, tenantless_user):
        """A user without tenant joins as MEMBER"""
        code = create_invite(client, admin_a["headers"])

        response = client.post("/api/invites/redeem", headers=tenantless_user["headers"], json={"code": code})

        assert response.status_code == 200
        data = response.json()
        assert data == {
            "joined": True,
            "tenant_id": admin_a["tenant_id"],
            "tenant_name": "alice@example.com's Family",
            "role": "member",
        }

    def test_expired_code_rejected(self, client, db_session, admin_a, tenantless_user):
        """Expired codes are invalid even with uses remaining"""
        code = create_invite(client, admin_a["headers"], max_uses=5)
        invite = get_invite(db_session, code)
        invite.expires_at = utc_now() - timedelta(minutes=1)
        db_session.commit()

        response = client.post("/api/invites/redeem", headers=tenantless_user["headers"], json={"code": code})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_OR_EXPIRED_CODE"
        assert get_invite(db_session, code).current_uses == 0

    def test_deactivated_code_rejected(self, client, db_session, admin_a, tenantless_user):
        """Deactivated codes are invalid"""
        code = create_invite(client, admin_a["headers"])
        invite = get_invite(db_session, code)
        client.delete(f"/api/tenants/me/invites/{invite.id}", headers=admin_a["headers"])

        response = client.post("/api/invites/redeem", headers=tenantless_user["headers"], json={"code": code})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_OR_EXPIRED_CODE"

    def test_unknown_code_rejected(self, client, tenantless_user):
        """Unknown codes are invalid"""
        response = client.post(
            "/api/invites/redeem", headers=tenantless_user["headers"], json={"code": "FFFF-FFFF-FFFF-FFFF"}
        )
        assert response.status_code == 400

    def test_already_member_of_same_tenant(self, client, db_session, admin_a):
        """Redeeming your own tenant's code conflicts and consumes nothing"""
        code = create_invite(client, admin_a["headers"])

        response = client.post("/api/invites/redeem", headers=admin_a["headers"], json={"code": code})

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_MEMBER"
        assert get_invite(db_session, code).current_uses == 0

    def test_member_of_other_tenant_must_leave_first(self, client, admin_a, outsider_d):
        """One tenant per user"""
        code = create_invite(client, admin_a["headers"])

        response = client.post("/api/invites/redeem", headers=outsider_d["headers"], json={"code": code})

        assert response.status_code == 409
        assert "leave" in response.json()["detail"]


class TestInviteConsumption:
    """Atomicity of counter increment and membership insert"""

    def test_stale_redeemer_loses_race(self, db_session, admin_a):
        """A redeemer holding a validated invite fails once another used the last slot"""
        service = InviteService(db_session)
        invite = self._make_invite(db_session, admin_a)

        first = User(email="first@example.com", password_hash="x")
        second = User(email="second@example.com", password_hash="x")
        db_session.add_all([first, second])
        db_session.commit()

        # Both validated before either consumed
        validated_a = service.get_redeemable(invite.code)
        validated_b = service.get_redeemable(invite.code)

        service.consume_no_commit(validated_a, first.id)
        db_session.commit()

        with pytest.raises(InviteExhaustedException):
            service.consume_no_commit(validated_b, second.id)
        db_session.rollback()

        invite = get_invite(db_session, invite.code)
        assert invite.current_uses == 1
        repo = TenantMembershipRepository(db_session)
        assert repo.has_any_membership(first.id)
        assert not repo.has_any_membership(second.id)

    def test_failed_membership_insert_rolls_back_counter(self, db_session, admin_a, monkeypatch):
        """If the membership insert fails the use is not consumed"""
        invite = self._make_invite(db_session, admin_a)
        user = User(email="unlucky@example.com", password_hash="x")
        db_session.add(user)
        db_session.commit()

        def fail(self, membership):
            raise RuntimeError("insert failed")

        monkeypatch.setattr(TenantMembershipRepository, "create_no_commit", fail)

        with pytest.raises(RuntimeError):
            InviteService(db_session).redeem_invite(invite.code, user)

        assert get_invite(db_session, invite.code).current_uses == 0
        assert not TenantMembershipRepository(db_session).has_any_membership(user.id)

    @staticmethod
    def _make_invite(db_session, admin_a) -> InviteCode:
        now = utc_now()
        invite = InviteCode(
            tenant_id=admin_a["tenant_id"],
            code=generate_invite_code(),
            created_by=admin_a["user_id"],
            created_at=now,
            expires_at=now + timedelta(days=1),
            max_uses=1,
            current_uses=0,
            is_active=True,
        )
        db_session.add(invite)
        db_session.commit()
        return invite


def test_joined_member_shares_tenant_data(client, admin_a, db_session):
    """After redeeming, the new member resolves to the inviter's tenant"""
    code = create_invite(client, admin_a["headers"])
    bob = register_user(client, "bob@example.com", invite_code=code)

    membership = (
        db_session.query(TenantMembership).filter(TenantMembership.user_id == bob["user_id"]).one()
    )
    assert membership.role == TenantRole.MEMBER
    assert membership.tenant_id == admin_a["tenant_id"]

    login = client.post("/api/auth/login", json={"email": "bob@example.com", "password": DEFAULT_PASSWORD})
    me = client.get("/api/auth/me", headers=bearer(login.json()["token"]))
    assert me.json()["tenant"]["id"] == admin_a["tenant_id"]


class TestInviteUsability:
    """Usable iff active, unexpired and uses remaining"""

    def _invite(self, **overrides) -> InviteCode:
        now = utc_now()
        fields = dict(
            code="ABCD-0000-0000-0001",
            created_at=now,
            expires_at=now + timedelta(hours=1),
            max_uses=2,
            current_uses=1,
            is_active=True,
        )
        fields.update(overrides)
        return InviteCode(**fields)

    def test_usable(self):
        """Active, unexpired code with a use left"""
        assert self._invite().is_usable()

    def test_inactive(self):
        """Deactivated codes are not usable"""
        assert not self._invite(is_active=False).is_usable()

    def test_expired(self):
        """Expiry is checked even with uses left"""
        assert not self._invite(expires_at=utc_now() - timedelta(seconds=1)).is_usable()

    def test_exhausted(self):
        """current_uses == max_uses leaves nothing"""
        assert not self._invite(current_uses=2).is_usable()
