import base64
import logging
import secrets
import uuid
from typing import Iterable, Optional

import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import TokenSettings
from app.core.errors import ConfigurationError, InvalidTokenError
from app.db.unit_of_work import UnitOfWork
from app.models.token import RefreshToken
from app.models.user import User
from app.schemas.token import AuthResponse
from app.services import user_service
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

SIGNING_ALGORITHM = "HS256"
REFRESH_TOKEN_BYTES = 64


class TokenService:
    """
    액세스 토큰(JWT) 발급과 리프레시 토큰 수명주기(발급/회전/폐기)를 담당한다.

    액세스 토큰은 저장하지 않고 서명과 만료로만 검증한다.
    리프레시 토큰은 DB에 저장되며, 한 번 사용되면 후속 토큰 발급과 같은 트랜잭션에서 폐기된다.
    """

    def __init__(self, db: Session, token_settings: TokenSettings):
        if token_settings is None or not token_settings.secret_key:
            raise ConfigurationError("JWT_SECRET_KEY is not configured.")
        self.db = db
        self.uow = UnitOfWork(db)
        self.settings = token_settings

    # ------------------------------------------------------------------
    # access token
    # ------------------------------------------------------------------
    def issue_access_token(self, user: User, roles: Iterable[str]) -> str:
        issued_at = utcnow()
        payload = {
            "sub": str(user.id),
            "name": user.user_name or "",
            "email": user.email or "",
            "jti": uuid.uuid4().hex,
            # 같은 역할이 두 번 들어와도 클레임에는 한 번만
            "roles": list(dict.fromkeys(roles or [])),
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
            "iat": issued_at,
            "exp": issued_at + self.settings.access_token_lifetime,
        }
        return jwt.encode(payload, self.settings.secret_key, algorithm=SIGNING_ALGORITHM)

    def generate_token_for_user(self, user: User) -> str:
        return self.issue_access_token(user, user_service.get_roles(user))

    def validate_expired_access_token(self, token: str) -> dict:
        """
        만료된 액세스 토큰에서 클레임을 꺼낸다. 서명만 검증하며 만료/issuer/audience는 검사하지 않는다.
        리프레시 직전 단계 전용이며, 권한 판단에는 절대 사용하지 말 것.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as e:
            raise InvalidTokenError("Malformed token.") from e

        if str(header.get("alg", "")).upper() != SIGNING_ALGORITHM:
            raise InvalidTokenError("Unexpected signing algorithm.")

        try:
            return jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[SIGNING_ALGORITHM],
                options={"verify_exp": False, "verify_aud": False, "verify_iss": False},
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError("Invalid token signature.") from e

    # ------------------------------------------------------------------
    # refresh token
    # ------------------------------------------------------------------
    @staticmethod
    def generate_refresh_token_value() -> str:
        return base64.b64encode(secrets.token_bytes(REFRESH_TOKEN_BYTES)).decode("ascii")

    def _stage_refresh_token(self, user_id: str) -> RefreshToken:
        created_at = utcnow()
        record = RefreshToken(
            user_id=user_id,
            token=self.generate_refresh_token_value(),
            expiry_date=created_at + self.settings.refresh_token_lifetime,
            is_revoked=False,
            created_at=created_at,
        )
        return self.uow.refresh_tokens.add(record)

    def issue_refresh_token(self, user_id: str) -> RefreshToken:
        record = self._stage_refresh_token(user_id)
        self.uow.commit()
        return record

    def issue_tokens(self, user: User) -> AuthResponse:
        """ 로그인/회원가입 시 액세스 토큰 + 리프레시 토큰 발급 """
        access_token = self.generate_token_for_user(user)
        refresh_token = self.issue_refresh_token(user.id)
        return self._build_auth_response(user, access_token, refresh_token.token)

    def refresh(self, refresh_token: str) -> Optional[AuthResponse]:
        record = self.uow.refresh_tokens.find_one(
            RefreshToken.token == refresh_token,
            RefreshToken.is_revoked.is_(False),
            RefreshToken.expiry_date > utcnow(),
        )
        if record is None:
            logger.warning("리프레시 거부 - 존재하지 않거나 폐기/만료된 토큰")
            return None

        user = user_service.find_user_by_id(self.db, record.user_id)
        if user is None:
            logger.warning(f"리프레시 거부 - 토큰 소유자 없음 (user_id: {record.user_id})")
            return None

        try:
            # 1. 기존 토큰 선점(폐기). 다른 요청이 먼저 회전했다면 실패
            if not self.uow.refresh_tokens.claim(record):
                self.uow.rollback()
                logger.warning(f"리프레시 거부 - 이미 사용된 토큰 (user_id: {user.id})")
                return None
            # 2. 새 토큰 발급 후 한 번에 커밋
            access_token = self.generate_token_for_user(user)
            successor = self._stage_refresh_token(user.id)
            self.uow.commit()
        except SQLAlchemyError:
            self.uow.rollback()
            raise

        logger.info(f"리프레시 토큰 회전 완료 - user_id: {user.id}")
        return self._build_auth_response(user, access_token, successor.token)

    def revoke_refresh_token(self, refresh_token: str) -> bool:
        record = self.uow.refresh_tokens.find_one_by_token(refresh_token)
        if record is None:
            return False
        record.is_revoked = True
        self.uow.refresh_tokens.update(record)
        self.uow.commit()
        return True

    def revoke_all_for_user(self, user_id: str) -> int:
        tokens = self.uow.refresh_tokens.find(
            RefreshToken.user_id == user_id,
            RefreshToken.is_revoked.is_(False),
        )
        for token in tokens:
            token.is_revoked = True
            self.uow.refresh_tokens.update(token)
        self.uow.commit()
        logger.info(f"리프레시 토큰 전체 폐기 - user_id: {user_id}, count: {len(tokens)}")
        return len(tokens)

    def _build_auth_response(self, user: User, access_token: str, refresh_token: str) -> AuthResponse:
        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expiration=utcnow() + self.settings.access_token_lifetime,
            user=user_service.to_user_response(user),
        )
