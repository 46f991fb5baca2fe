import logging
from typing import List, Optional

from fastapi import HTTPException, status
from passlib.hash import bcrypt
from sqlalchemy.orm import Session

from app.models.user import Role, User
from app.schemas.auth import RegisterRequest
from app.schemas.user import UserProfileResponse, UserProfileUpdateRequest, UserResponse
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.verify(password, password_hash)


def find_user_by_id(db: Session, user_id: str) -> Optional[User]:
    """ ID로 사용자 조회 (토큰 서비스에서 사용) """
    return db.get(User, user_id)


def get_user_by_user_name(db: Session, user_name: str) -> Optional[User]:
    return db.query(User).filter(User.user_name == user_name).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_roles(user: User) -> List[str]:
    return [role.name for role in user.roles]


def assign_role(db: Session, user: User, role_name: str) -> User:
    role = db.query(Role).filter(Role.name == role_name).first()
    if role is None:
        role = Role(name=role_name)
        db.add(role)
    if role not in user.roles:
        user.roles.append(role)
    db.commit()
    db.refresh(user)
    return user


def create_user(db: Session, user_in: RegisterRequest) -> User:
    # 전화번호 중복 체크
    if get_user_by_user_name(db, user_in.phone_number):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Phone number is already registered.")
    if user_in.email and get_user_by_email(db, user_in.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already registered.")

    user = User(
        user_name=user_in.phone_number,
        phone_number=user_in.phone_number,
        full_name=user_in.full_name,
        email=user_in.email,
        password_hash=hash_password(user_in.password),
        created_at=utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"사용자 생성 - id: {user.id}")
    return user


def update_profile(db: Session, user: User, profile_in: UserProfileUpdateRequest) -> User:
    if profile_in.email and profile_in.email != user.email:
        existing = get_user_by_email(db, profile_in.email)
        if existing is not None and existing.id != user.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already registered.")
        user.email = profile_in.email
    if profile_in.full_name:
        user.full_name = profile_in.full_name
    if profile_in.phone_number:
        user.phone_number = profile_in.phone_number

    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect.")
    user.password_hash = hash_password(new_password)
    user.updated_at = utcnow()
    db.commit()


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        full_name=user.full_name,
        phone_number=user.phone_number or "",
        email=user.email or "",
        profile_picture_url=user.profile_picture_url or "",
    )


def to_profile_response(user: User) -> UserProfileResponse:
    return UserProfileResponse(
        id=user.id,
        user_name=user.user_name,
        full_name=user.full_name,
        phone_number=user.phone_number or "",
        email=user.email or "",
        profile_picture_url=user.profile_picture_url or "",
        created_at=user.created_at,
        updated_at=user.updated_at,
    )
