import os
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv

from app.core.errors import ConfigurationError

load_dotenv()


class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./realestate.db")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
    JWT_ALGORITHM = "HS256"
    JWT_ISSUER = os.getenv("JWT_ISSUER", "RealEstate.API")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "RealEstate.Client")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60))
    REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", 7))
    PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", 8))

settings = Settings()


@dataclass(frozen=True)
class TokenSettings:
    """토큰 발급에 필요한 설정 묶음. 생성 시점에 시크릿을 검증한다."""

    secret_key: str
    issuer: str
    audience: str
    algorithm: str = "HS256"
    access_token_lifetime: timedelta = timedelta(hours=1)
    refresh_token_lifetime: timedelta = timedelta(days=7)

    def __post_init__(self):
        if not self.secret_key or not self.secret_key.strip():
            raise ConfigurationError("JWT_SECRET_KEY is not configured.")

    @classmethod
    def from_settings(cls, source: Settings) -> "TokenSettings":
        return cls(
            secret_key=source.JWT_SECRET_KEY,
            issuer=source.JWT_ISSUER,
            audience=source.JWT_AUDIENCE,
            algorithm=source.JWT_ALGORITHM,
            access_token_lifetime=timedelta(minutes=source.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_token_lifetime=timedelta(days=source.REFRESH_TOKEN_EXPIRE_DAYS),
        )
