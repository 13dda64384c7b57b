from datetime import timedelta

import pytest

from agenda.errors import DuplicateCode, Forbidden, InvalidCredential, NotFound, Unauthenticated, ValidationError
from agenda.schemas import Identity, Role
from agenda.services.access_control import AccessControl, authorize
from agenda.sessions import SessionManager


def test_create_then_authenticate_round_trip(access, admin):
    created = access.create_access_code("EMB000001", Role.PROVIDER, admin, location="Federacao")
    identity, token = access.authenticate("EMB000001")
    assert identity.code == created.code
    assert identity.role is Role.PROVIDER
    assert token
    assert access.resolve(token) == identity


def test_unknown_code_is_invalid_credential(access):
    with pytest.raises(InvalidCredential):
        access.authenticate("NOPE00000")
    with pytest.raises(InvalidCredential):
        access.authenticate("")


def test_deactivated_code_cannot_authenticate_but_is_listed(access, admin):
    created = access.create_access_code("SAC000001", Role.REQUESTER, admin)
    access.deactivate_access_code(created.id, admin)

    with pytest.raises(InvalidCredential):
        access.authenticate("SAC000001")

    listed = {c.code: c for c in access.list_access_codes(admin)}
    assert "SAC000001" in listed
    assert listed["SAC000001"].active is False


def test_deactivation_ends_existing_sessions(access, admin):
    created = access.create_access_code("SAC000001", Role.REQUESTER, admin)
    _, token = access.authenticate("SAC000001")
    access.update_access_code(created.id, admin, active=False)
    assert access.resolve(token) is None


def test_deactivated_code_cannot_be_reactivated_or_reissued(access, admin):
    created = access.create_access_code("SAC000001", Role.REQUESTER, admin)
    access.deactivate_access_code(created.id, admin)
    with pytest.raises(ValidationError):
        access.update_access_code(created.id, admin, active=True)
    with pytest.raises(DuplicateCode):
        access.create_access_code("SAC000001", Role.REQUESTER, admin)


def test_duplicate_active_code(access, admin):
    access.create_access_code("EMB000001", Role.PROVIDER, admin)
    with pytest.raises(DuplicateCode):
        access.create_access_code("EMB000001", Role.REQUESTER, admin)


@pytest.mark.parametrize("code", ["", "   ", "ABC12"])
def test_code_shape_is_validated(access, admin, code):
    with pytest.raises(ValidationError):
        access.create_access_code(code, Role.PROVIDER, admin)


def test_management_is_admin_only(access, provider):
    with pytest.raises(Forbidden):
        access.create_access_code("EMB000002", Role.PROVIDER, provider)
    with pytest.raises(Forbidden):
        access.list_access_codes(provider)
    with pytest.raises(Unauthenticated):
        access.list_access_codes(None)


def test_update_location_and_role(access, admin):
    created = access.create_access_code("EMB000001", Role.PROVIDER, admin, location="Cabula")
    updated = access.update_access_code(created.id, admin, location="Federacao", role=Role.REQUESTER)
    assert updated.location == "Federacao"
    assert updated.role is Role.REQUESTER
    assert updated.active is True


def test_update_unknown_code(access, admin):
    with pytest.raises(NotFound):
        access.update_access_code(4242, admin, location="x")
    with pytest.raises(NotFound):
        access.deactivate_access_code(4242, admin)


def test_authorize():
    identity = Identity(id=1, code="EMB000001", role=Role.PROVIDER)
    assert authorize(identity, {Role.PROVIDER}) is identity
    with pytest.raises(Forbidden):
        authorize(identity, {Role.ADMIN, Role.REQUESTER})
    with pytest.raises(Unauthenticated):
        authorize(None, {Role.PROVIDER})


def test_revoked_session_is_absent(access, admin):
    access.create_access_code("EMB000001", Role.PROVIDER, admin)
    _, token = access.authenticate("EMB000001")
    assert access.revoke(token) is True
    assert access.resolve(token) is None
    assert access.revoke(None) is False


def test_expired_session_is_absent(store, admin):
    sessions = SessionManager(secret_key="test-secret-key-for-session-signing", ttl=timedelta(seconds=-1))
    expired = AccessControl(store, sessions)
    expired.create_access_code("EMB000001", Role.PROVIDER, admin)
    _, token = expired.authenticate("EMB000001")
    assert expired.resolve(token) is None
    with pytest.raises(Unauthenticated):
        expired.who_am_i(expired.resolve(token))


def test_token_signed_with_other_key_is_rejected(access, admin, store):
    access.create_access_code("EMB000001", Role.PROVIDER, admin)
    other = AccessControl(store, SessionManager(secret_key="another-secret-key-for-session-signing"))
    _, token = other.authenticate("EMB000001")
    assert access.resolve(token) is None
    assert access.resolve("not-a-token") is None


def test_role_change_applies_to_open_sessions(access, admin):
    created = access.create_access_code("ADM999999", Role.ADMIN, admin)
    _, token = access.authenticate("ADM999999")
    assert authorize(access.resolve(token), {Role.ADMIN})

    access.update_access_code(created.id, admin, role=Role.REQUESTER)

    demoted = access.resolve(token)
    assert demoted.role is Role.REQUESTER
    with pytest.raises(Forbidden):
        authorize(demoted, {Role.ADMIN})
    with pytest.raises(Forbidden):
        access.list_access_codes(demoted)
