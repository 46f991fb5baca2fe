from fastapi import APIRouter, Depends, Body, status
from sqlalchemy.orm import Session

from app.dependencies.auth import get_current_user, get_token_service
from app.dependencies.db import get_db
from app.models.user import User
from app.schemas.auth import ChangePasswordRequest, LoginRequest, MessageResponse, RegisterRequest
from app.schemas.token import AuthResponse, RefreshTokenRequest
from app.services.auth_service import (
    change_user_password,
    login_user,
    logout_user,
    refresh_user_tokens,
    register_user,
    revoke_user_token,
)
from app.services.token_service import TokenService

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="회원가입",
    description="전화번호를 아이디로 계정을 만들고 access/refresh token을 발급합니다.",
)
def register(
    register_in: RegisterRequest = Body(...),
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    return register_user(db, token_service, register_in)


@router.post("/login", response_model=AuthResponse, summary="로그인")
def login(
    login_in: LoginRequest = Body(...),
    db: Session = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    """
    로그인
    - 전화번호와 비밀번호를 받아 인증
    - 성공 시 access/refresh token 반환
    """
    return login_user(db, token_service, login_in)


@router.post(
    "/refresh-token",
    response_model=AuthResponse,
    summary="리프레시 토큰 갱신",
    description="리프레시 토큰을 한 번 사용하고, 새로운 access/refresh token을 발급합니다.",
)
def refresh_token(
    req: RefreshTokenRequest = Body(...),
    token_service: TokenService = Depends(get_token_service),
):
    return refresh_user_tokens(token_service, req.refresh_token)


@router.post("/revoke-token", response_model=MessageResponse, summary="리프레시 토큰 폐기")
def revoke_token(
    req: RefreshTokenRequest = Body(...),
    current_user: User = Depends(get_current_user),
    token_service: TokenService = Depends(get_token_service),
):
    revoke_user_token(token_service, current_user, req.refresh_token)
    return MessageResponse(message="Refresh token revoked.")


@router.post("/logout", response_model=MessageResponse, summary="로그아웃 (모든 기기)")
def logout(
    current_user: User = Depends(get_current_user),
    token_service: TokenService = Depends(get_token_service),
):
    logout_user(token_service, current_user)
    return MessageResponse(message="Logged out successfully.")


@router.post("/change-password", response_model=MessageResponse, summary="비밀번호 변경")
def change_password(
    req: ChangePasswordRequest = Body(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    change_user_password(db, current_user, req.current_password, req.new_password)
    return MessageResponse(message="Password changed successfully.")
