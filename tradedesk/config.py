from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    API_BASE_URL: str = "http://localhost:8080/api/v1"
    API_TIMEOUT: float = 10.0
    # Transport-level retries, connection failures only
    API_RETRIES: int = 2

    # Bearer used when no session token is available (local backend only)
    DEV_AUTH_TOKEN: Optional[str] = None
    TOKEN_EXPIRY_LEEWAY: int = 60

    # 401 messages that end the session instead of refreshing the token
    SIGN_OUT_PATTERNS: List[str] = ["user not registered", "user not found", "unauthorized"]
    SIGN_OUT_REDIRECT: str = "/auth/login?message=Please register or sign in"

    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    @field_validator("API_BASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        if isinstance(v, str):
            return v.rstrip("/")
        return v

settings = Settings()
