from fastapi import APIRouter, Depends, Body
from sqlalchemy.orm import Session

from app.dependencies.auth import get_current_user
from app.dependencies.db import get_db
from app.models.user import User
from app.schemas.auth import ChangePasswordRequest, MessageResponse
from app.schemas.user import UserProfileResponse, UserProfileUpdateRequest, UserProfileUpdateResponse
from app.services.auth_service import change_user_password
from app.services.user_service import to_profile_response, update_profile

router = APIRouter()


@router.get("/profile", response_model=UserProfileResponse, summary="내 프로필 조회")
def get_my_profile(current_user: User = Depends(get_current_user)):
    return to_profile_response(current_user)


@router.put("/profile", response_model=UserProfileUpdateResponse, summary="내 프로필 수정")
def update_my_profile(
    profile_in: UserProfileUpdateRequest = Body(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    전달된 필드만 변경 (이메일은 다른 사용자와 중복 불가)
    """
    user = update_profile(db, current_user, profile_in)
    return UserProfileUpdateResponse(
        success=True,
        message="Profile updated successfully.",
        profile=to_profile_response(user),
    )


@router.put("/change-password", response_model=MessageResponse, summary="비밀번호 변경")
def change_my_password(
    req: ChangePasswordRequest = Body(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    change_user_password(db, current_user, req.current_password, req.new_password)
    return MessageResponse(message="Password changed successfully.")
