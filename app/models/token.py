import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String

from app.db.base import Base
from app.utils.clock import utcnow


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    # base64(64 bytes) = 88자
    token = Column(String(128), unique=True, nullable=False)
    expiry_date = Column(DateTime, nullable=False)
    is_revoked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def is_active(self) -> bool:
        return not self.is_revoked and utcnow() < self.expiry_date
