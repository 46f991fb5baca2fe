import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models.user import User
from app.schemas.auth import LoginRequest, RegisterRequest
from app.schemas.token import AuthResponse
from app.services.token_service import TokenService
from app.services.user_service import (
    change_password,
    create_user,
    get_user_by_user_name,
    verify_password,
)

logger = logging.getLogger(__name__)

# 로그인 실패 시 공통 예외 (아이디/비밀번호 중 무엇이 틀렸는지 노출하지 않음)
invalid_credentials_exception = HTTPException(
    status_code=status.HTTP_400_BAD_REQUEST,
    detail="Invalid phone number or password.",
)


def register_user(db: Session, token_service: TokenService, register_in: RegisterRequest) -> AuthResponse:
    """
    회원가입 후 바로 access/refresh token 발급
    """
    user = create_user(db, register_in)
    return token_service.issue_tokens(user)


def login_user(db: Session, token_service: TokenService, login_in: LoginRequest) -> AuthResponse:
    user = get_user_by_user_name(db, login_in.phone_number)
    if not user or not verify_password(login_in.password, user.password_hash):
        logger.info(f"로그인 실패 - 사용자명: {login_in.phone_number}")
        raise invalid_credentials_exception

    logger.info(f"로그인 성공 - user_id: {user.id}")
    return token_service.issue_tokens(user)


def refresh_user_tokens(token_service: TokenService, refresh_token: str) -> AuthResponse:
    result = token_service.refresh(refresh_token)
    if result is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired refresh token.")
    return result


def revoke_user_token(token_service: TokenService, user: User, refresh_token: str) -> None:
    record = token_service.uow.refresh_tokens.find_one_by_token(refresh_token)
    # 다른 사용자의 토큰은 존재 여부도 알려주지 않음
    if record is None or record.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Refresh token not found.")
    token_service.revoke_refresh_token(refresh_token)


def logout_user(token_service: TokenService, user: User) -> int:
    count = token_service.revoke_all_for_user(user.id)
    logger.info(f"로그아웃 - user_id: {user.id}")
    return count


def change_user_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    change_password(db, user, current_password, new_password)
    logger.info(f"비밀번호 변경 - user_id: {user.id}")
