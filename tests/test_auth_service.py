import pytest

from nutri_api.core.config import MAX_SCAN_PAGES
from nutri_api.core.exceptions import (
    EmailLookupError,
    EmailNotConfirmed,
    GenericAuthFailure,
    IdentityCreationError,
    InvalidCredentials,
    ProfileUpsertError,
    ReferenceDataError,
    SessionCreationError,
    UpstreamTimeout,
    UserNotFound,
    ValidationError,
)
from nutri_api.services.auth_service import AuthService, classify_login_error
from nutri_api.services.identity_service import SignInResult, UserRecord

from .fakes import FIXED_NOW, FakeIdentity, make_users

VALID = {
    "email": "  New@Example.com ",
    "password": "s3cret!",
    "nombre_usuario": "Ana",
    "codigo_preferencia": "VEG",
    "codigo_rol": "PAC",
}


class EndlessIdentity(FakeIdentity):
    """Provider that never runs out of full pages."""

    def list_users(self, *, page, per_page):
        self.calls.append(("list_users", page, per_page))
        return make_users(per_page, domain=f"p{page}.com")


# --- REGISTER ---
@pytest.mark.parametrize("missing", sorted(VALID))
@pytest.mark.parametrize("blank", [None, ""])
def test_register_missing_field_makes_no_remote_call(service, identity, db, missing, blank):
    body = dict(VALID, **{missing: blank})
    with pytest.raises(ValidationError) as exc:
        service.register(**body)
    assert missing in exc.value.detail["missing"]
    assert identity.calls == []
    assert db.calls == []


def test_register_success_links_profile_to_identity(service, identity, db):
    result = service.register(**VALID)

    assert result.user_id == "user-123"
    assert result.profile["id"] == "user-123"
    assert result.profile["id_preferencia"] == 7
    assert result.profile["id_rol"] == 2
    assert result.profile["fecha_creacion"] == FIXED_NOW.isoformat()
    # trimmed, casing kept
    assert result.email == "New@Example.com"
    assert identity.calls[0] == ("create_user", "New@Example.com", "s3cret!", {"name": "Ana"})
    assert [c[0] for c in identity.calls + db.calls].count("upsert_profile") == 1


def test_register_calls_run_in_order(service, db):
    service.register(**VALID)
    assert db.calls == [
        ("select_one_by_code", "preferencias", "VEG"),
        ("select_one_by_code", "roles", "PAC"),
        ("upsert_profile", "user-123"),
    ]


def test_register_identity_error_stops_everything(service, identity, db, provider_error):
    identity.create_error = provider_error("User already registered", 422)
    with pytest.raises(IdentityCreationError) as exc:
        service.register(**VALID)
    assert exc.value.detail == "User already registered"
    assert db.calls == []


def test_register_identity_without_id(service, identity, db):
    identity.create_result = None
    with pytest.raises(IdentityCreationError):
        service.register(**VALID)
    assert db.calls == []


def test_register_unknown_preference_code(service, db):
    with pytest.raises(ReferenceDataError) as exc:
        service.register(**dict(VALID, codigo_preferencia="NOPE"))
    assert exc.value.code == "NOPE"
    assert "NOPE" in exc.value.message
    assert db.count("upsert_profile") == 0


def test_register_unknown_role_code(service, db):
    with pytest.raises(ReferenceDataError) as exc:
        service.register(**dict(VALID, codigo_rol="ADMINX"))
    assert exc.value.table == "roles"
    assert "ADMINX" in exc.value.message
    assert db.count("upsert_profile") == 0


def test_register_lookup_error_is_reference_error(service, db, db_error):
    db.lookup_error = db_error("connection reset")
    with pytest.raises(ReferenceDataError) as exc:
        service.register(**VALID)
    assert exc.value.code == "VEG"
    assert db.count("upsert_profile") == 0


def test_register_upsert_failure_reports_orphaned_identity(service, identity, db, db_error):
    db.upsert_error = db_error("permission denied for table perfiles", "42501")
    with pytest.raises(ProfileUpsertError) as exc:
        service.register(**VALID)
    assert exc.value.identity_id == "user-123"
    assert exc.value.detail["identity_id"] == "user-123"
    assert db.count("upsert_profile") == 1
    assert identity.count("create_user") == 1


# --- LOGIN ---
@pytest.mark.parametrize(
    "message, expected",
    [
        ("Invalid login credentials", InvalidCredentials),
        ("Email not confirmed", EmailNotConfirmed),
        ("User not found", UserNotFound),
        ("User does not exist", UserNotFound),
        ("Database unavailable", GenericAuthFailure),
    ],
)
def test_classify_login_error(message, expected):
    err = classify_login_error(message, code=400)
    assert type(err) is expected
    assert err.detail == message
    assert err.code == 400


def test_classify_prefers_invalid_over_confirm():
    assert isinstance(classify_login_error("invalid confirmation token"), InvalidCredentials)


def test_login_normalizes_email(service, identity):
    result = service.login(email="  Someone@Example.COM ", password="pw")
    assert identity.calls == [("sign_in_with_password", "someone@example.com", "pw")]
    assert result.session["access_token"] == "at"


@pytest.mark.parametrize("email, password", [(None, "pw"), ("a@b.c", None), ("", ""), ("a@b.c", "")])
def test_login_missing_input(service, identity, email, password):
    with pytest.raises(ValidationError):
        service.login(email=email, password=password)
    assert identity.calls == []


def test_login_provider_error_is_classified(service, identity, provider_error):
    identity.sign_in_error = provider_error("Invalid login credentials", 400)
    with pytest.raises(InvalidCredentials) as exc:
        service.login(email="a@b.c", password="bad")
    assert exc.value.code == 400
    assert exc.value.status_code == 401


@pytest.mark.parametrize(
    "result",
    [
        SignInResult(session=None, user={"id": "u"}),
        SignInResult(session={"access_token": "at"}, user=None),
    ],
)
def test_login_incomplete_response(service, identity, result):
    identity.sign_in_result = result
    with pytest.raises(SessionCreationError):
        service.login(email="a@b.c", password="pw")


def test_login_timeout_propagates(service, identity):
    identity.sign_in_error = UpstreamTimeout("Upstream timeout during sign_in_with_password")
    with pytest.raises(UpstreamTimeout):
        service.login(email="a@b.c", password="pw")


# --- CHECK EMAIL ---
def test_email_exists_missing_email(service, identity):
    with pytest.raises(ValidationError):
        service.email_exists(email="")
    assert identity.calls == []


def test_email_exists_direct_lookup():
    identity = FakeIdentity(users=[UserRecord(id="u-1", email="found@example.com")], direct_lookup=True)
    svc = AuthService(identity, None)
    found = svc.email_exists(email=" Found@Example.com ")
    assert (found.exists, found.user_id) == (True, "u-1")
    assert identity.calls == [("get_user_by_email", "found@example.com")]


def test_email_exists_direct_lookup_error(provider_error):
    identity = FakeIdentity(direct_lookup=True)
    identity.lookup_error = provider_error("boom", 500)
    with pytest.raises(EmailLookupError):
        AuthService(identity, None).email_exists(email="x@example.com")


def test_email_scan_finds_user_on_third_page():
    identity = FakeIdentity(users=make_users(250))
    found = AuthService(identity, None).email_exists(email="USER230@example.com")
    assert found.exists is True
    assert found.user_id == "id-230"
    assert identity.count("list_users") == 3
    assert identity.calls[-1] == ("list_users", 3, 100)


def test_email_scan_absent_exhausts_pages():
    identity = FakeIdentity(users=make_users(250))
    found = AuthService(identity, None).email_exists(email="ghost@example.com")
    assert (found.exists, found.user_id) == (False, None)
    # pages 1 and 2 are full, page 3 is short
    assert identity.count("list_users") == 3


def test_email_scan_stops_on_empty_page():
    identity = FakeIdentity(users=make_users(200))
    AuthService(identity, None).email_exists(email="ghost@example.com")
    assert identity.count("list_users") == 3


def test_email_scan_is_bounded():
    identity = EndlessIdentity()
    found = AuthService(identity, None).email_exists(email="ghost@example.com")
    assert found.exists is False
    assert identity.count("list_users") == MAX_SCAN_PAGES


def test_email_scan_list_error(provider_error):
    identity = FakeIdentity(users=make_users(5))
    identity.list_error = provider_error("forbidden", 403)
    with pytest.raises(EmailLookupError):
        AuthService(identity, None).email_exists(email="user1@example.com")


def test_email_exists_is_idempotent():
    identity = FakeIdentity(users=make_users(150))
    svc = AuthService(identity, None)
    first = svc.email_exists(email="user120@example.com")
    second = svc.email_exists(email="user120@example.com")
    assert first == second


# --- PARTIAL FAILURES AFTER IDENTITY CREATION ---
def test_register_upsert_timeout_reports_orphaned_identity(service, db):
    db.upsert_error = UpstreamTimeout("Upstream timeout during upsert perfiles")
    with pytest.raises(ProfileUpsertError) as exc:
        service.register(**VALID)
    assert exc.value.identity_id == "user-123"
    assert exc.value.detail["identity_id"] == "user-123"
    assert db.count("upsert_profile") == 1


def test_register_lookup_timeout_reports_identity(service, db):
    db.lookup_error = UpstreamTimeout("Upstream timeout during select preferencias")
    with pytest.raises(ReferenceDataError) as exc:
        service.register(**VALID)
    assert exc.value.identity_id == "user-123"
    assert db.count("upsert_profile") == 0


def test_register_unknown_code_reports_identity(service):
    with pytest.raises(ReferenceDataError) as exc:
        service.register(**dict(VALID, codigo_preferencia="NOPE"))
    assert exc.value.identity_id == "user-123"
    assert exc.value.detail == {"table": "preferencias", "code": "NOPE", "identity_id": "user-123"}


# --- BLANK EMAILS ---
def test_login_whitespace_email_is_missing(service, identity):
    with pytest.raises(ValidationError):
        service.login(email="   ", password="pw")
    assert identity.calls == []


def test_email_exists_whitespace_email_is_missing():
    identity = FakeIdentity(users=[UserRecord(id="phone-user", email=None)])
    with pytest.raises(ValidationError):
        AuthService(identity, None).email_exists(email="   ")
    assert identity.calls == []


def test_email_scan_skips_users_without_email():
    identity = FakeIdentity(users=[UserRecord(id="phone-user", email=None), UserRecord(id="u-2", email="")])
    found = AuthService(identity, None).email_exists(email="someone@example.com")
    assert (found.exists, found.user_id) == (False, None)
