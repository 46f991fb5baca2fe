import base64
import dataclasses
from datetime import timedelta

import jwt
import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import TokenSettings
from app.core.errors import ConfigurationError, InvalidTokenError
from app.models.token import RefreshToken
from app.services import user_service
from app.services.token_service import TokenService
from app.utils.clock import utcnow


def decode(token: str, token_settings: TokenSettings) -> dict:
    return jwt.decode(
        token,
        token_settings.secret_key,
        algorithms=["HS256"],
        audience=token_settings.audience,
        issuer=token_settings.issuer,
    )


# ----------------------------------------------------------------------
# 설정
# ----------------------------------------------------------------------
@pytest.mark.parametrize("secret", ["", "   ", None])
def test_token_settings_rejects_missing_secret(secret):
    with pytest.raises(ConfigurationError):
        TokenSettings(secret_key=secret, issuer="iss", audience="aud")


def test_token_service_rejects_missing_settings(db_session):
    with pytest.raises(ConfigurationError):
        TokenService(db_session, None)


# ----------------------------------------------------------------------
# access token
# ----------------------------------------------------------------------
def test_access_token_claims(token_service, token_settings, user):
    token = token_service.issue_access_token(user, ["Admin", "Agent"])
    payload = decode(token, token_settings)

    assert payload["sub"] == user.id
    assert payload["name"] == user.user_name
    assert payload["email"] == user.email
    assert payload["roles"] == ["Admin", "Agent"]
    assert payload["iss"] == token_settings.issuer
    assert payload["aud"] == token_settings.audience
    assert payload["exp"] - payload["iat"] == 3600
    assert payload["jti"]


def test_access_token_roles_have_no_duplicates(token_service, token_settings, user):
    token = token_service.issue_access_token(user, ["Admin", "Agent", "Admin"])
    assert decode(token, token_settings)["roles"] == ["Admin", "Agent"]


def test_access_token_without_roles(token_service, token_settings, user):
    token = token_service.issue_access_token(user, [])
    assert decode(token, token_settings)["roles"] == []


def test_access_token_empty_email_claim(make_user, token_service, token_settings):
    user = make_user(email=None)
    payload = decode(token_service.issue_access_token(user, []), token_settings)
    assert payload["email"] == ""


def test_access_tokens_issued_together_are_distinct(token_service, token_settings, user):
    first = token_service.issue_access_token(user, ["Admin"])
    second = token_service.issue_access_token(user, ["Admin"])

    assert first != second
    assert decode(first, token_settings)["jti"] != decode(second, token_settings)["jti"]


def test_access_token_signature_fails_with_other_key(token_service, user):
    token = token_service.issue_access_token(user, [])
    with pytest.raises(jwt.InvalidSignatureError):
        jwt.decode(token, "another-secret-" * 5, algorithms=["HS256"], options={"verify_aud": False})


def test_generate_token_for_user_uses_stored_roles(db_session, token_service, token_settings, user):
    user_service.assign_role(db_session, user, "Admin")
    payload = decode(token_service.generate_token_for_user(user), token_settings)
    assert payload["roles"] == ["Admin"]


# ----------------------------------------------------------------------
# 만료 토큰 검증 (서명만 확인)
# ----------------------------------------------------------------------
def test_validate_expired_access_token_accepts_expired_token(db_session, token_settings, user):
    expired_settings = dataclasses.replace(token_settings, access_token_lifetime=timedelta(minutes=-5))
    token = TokenService(db_session, expired_settings).issue_access_token(user, ["Admin"])

    with pytest.raises(jwt.ExpiredSignatureError):
        decode(token, token_settings)

    claims = TokenService(db_session, token_settings).validate_expired_access_token(token)
    assert claims["sub"] == user.id
    assert claims["roles"] == ["Admin"]


def test_validate_expired_access_token_ignores_issuer_and_audience(db_session, token_settings, user):
    other = dataclasses.replace(token_settings, issuer="someone-else", audience="other-client")
    token = TokenService(db_session, other).issue_access_token(user, [])

    claims = TokenService(db_session, token_settings).validate_expired_access_token(token)
    assert claims["iss"] == "someone-else"


def test_validate_expired_access_token_rejects_other_algorithm(token_service, token_settings, user):
    token = jwt.encode({"sub": user.id}, token_settings.secret_key, algorithm="HS512")
    with pytest.raises(InvalidTokenError):
        token_service.validate_expired_access_token(token)


def test_validate_expired_access_token_rejects_unsigned_token(token_service, user):
    token = jwt.encode({"sub": user.id}, None, algorithm="none")
    with pytest.raises(InvalidTokenError):
        token_service.validate_expired_access_token(token)


def test_validate_expired_access_token_rejects_bad_signature(token_service, user):
    token = jwt.encode({"sub": user.id}, "wrong-secret-" * 6, algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        token_service.validate_expired_access_token(token)


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
def test_validate_expired_access_token_rejects_malformed(token_service, token):
    with pytest.raises(InvalidTokenError):
        token_service.validate_expired_access_token(token)


# ----------------------------------------------------------------------
# refresh token 발급
# ----------------------------------------------------------------------
def test_generate_refresh_token_value_has_64_random_bytes():
    value = TokenService.generate_refresh_token_value()
    assert len(base64.b64decode(value)) == 64
    assert value != TokenService.generate_refresh_token_value()


def test_issue_refresh_token_persists_record(db_session, token_service, user):
    record = token_service.issue_refresh_token(user.id)

    stored = db_session.query(RefreshToken).filter_by(token=record.token).one()
    assert stored.user_id == user.id
    assert stored.is_revoked is False
    assert stored.expiry_date - stored.created_at == timedelta(days=7)
    assert abs(stored.created_at - utcnow()) < timedelta(seconds=5)
    assert stored.is_active


def test_issue_tokens_returns_profile(token_service, user):
    result = token_service.issue_tokens(user)

    assert result.user.id == user.id
    assert result.user.email == user.email
    assert result.token_type == "bearer"
    assert timedelta(minutes=59) < result.expiration - utcnow() <= timedelta(hours=1)


# ----------------------------------------------------------------------
# refresh (회전)
# ----------------------------------------------------------------------
def test_refresh_unknown_token_returns_none(token_service, user):
    assert token_service.refresh(TokenService.generate_refresh_token_value()) is None


def test_refresh_revoked_token_returns_none(db_session, token_service, user):
    record = token_service.issue_refresh_token(user.id)
    record.is_revoked = True
    db_session.commit()

    assert token_service.refresh(record.token) is None


def test_refresh_expired_token_returns_none(db_session, token_service, user):
    record = token_service.issue_refresh_token(user.id)
    record.expiry_date = utcnow() - timedelta(seconds=1)
    db_session.commit()

    assert token_service.refresh(record.token) is None


def test_refresh_orphaned_token_returns_none(db_session, token_service):
    now = utcnow()
    db_session.add(RefreshToken(
        user_id="deleted-user",
        token="orphan-token",
        expiry_date=now + timedelta(days=7),
        created_at=now,
    ))
    db_session.commit()

    assert token_service.refresh("orphan-token") is None


def test_refresh_rotates_tokens(db_session, token_service, token_settings, user):
    login = token_service.issue_tokens(user)

    refreshed = token_service.refresh(login.refresh_token)

    assert refreshed is not None
    assert refreshed.access_token != login.access_token
    assert refreshed.refresh_token != login.refresh_token
    assert refreshed.user.id == user.id
    assert decode(refreshed.access_token, token_settings)["sub"] == user.id

    old = db_session.query(RefreshToken).filter_by(token=login.refresh_token).one()
    new = db_session.query(RefreshToken).filter_by(token=refreshed.refresh_token).one()
    assert old.is_revoked is True
    assert new.is_revoked is False


def test_refresh_token_is_single_use(token_service, user):
    login = token_service.issue_tokens(user)

    assert token_service.refresh(login.refresh_token) is not None
    assert token_service.refresh(login.refresh_token) is None


def test_refreshed_token_can_be_used_again(token_service, user):
    first = token_service.refresh(token_service.issue_tokens(user).refresh_token)
    second = token_service.refresh(first.refresh_token)

    assert second is not None
    assert second.refresh_token != first.refresh_token


def test_refresh_storage_error_propagates_and_rolls_back(monkeypatch, db_session, token_service, user):
    record = token_service.issue_refresh_token(user.id)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk full"))

    monkeypatch.setattr(db_session, "commit", failing_commit)
    with pytest.raises(OperationalError):
        token_service.refresh(record.token)
    monkeypatch.undo()

    # 후속 토큰은 저장되지 않고, 기존 토큰은 폐기되지 않은 상태로 남는다
    rows = db_session.query(RefreshToken).filter_by(user_id=user.id).all()
    assert [(row.token, row.is_revoked) for row in rows] == [(record.token, False)]

    assert token_service.refresh(record.token) is not None


# ----------------------------------------------------------------------
# 폐기
# ----------------------------------------------------------------------
def test_revoke_all_for_user(make_user, token_service, user):
    tokens = [token_service.issue_refresh_token(user.id).token for _ in range(3)]
    other_user = make_user()
    other_token = token_service.issue_refresh_token(other_user.id).token

    assert token_service.revoke_all_for_user(user.id) == 3

    for token in tokens:
        assert token_service.refresh(token) is None
    assert token_service.refresh(other_token) is not None


def test_revoke_all_for_user_without_tokens_is_noop(token_service, user):
    assert token_service.revoke_all_for_user(user.id) == 0
    assert token_service.revoke_all_for_user(user.id) == 0


def test_revoke_refresh_token(token_service, user):
    record = token_service.issue_refresh_token(user.id)

    assert token_service.revoke_refresh_token(record.token) is True
    assert token_service.refresh(record.token) is None
    assert token_service.revoke_refresh_token("missing") is False
