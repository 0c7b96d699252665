"""
Application settings

Loaded once from environment variables (or a local .env file).
Variable names are case-insensitive: PORT and port both work.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8800, ge=1, le=65535)

    # Database
    # Unset means the API runs without a database and data routes answer 500
    database_url: Optional[str] = Field(default=None, description="MongoDB connection string")
    database_name: str = Field(default="MindMosaic")

    # Tokens
    jwt_secret: str = Field(default="dev-secret-key-change-me")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60, ge=1)

    # Token cookie
    cookie_secure: bool = Field(default=False)
    cookie_samesite: str = Field(default="strict")

    # Comma-separated list of origins
    cors_origins: str = Field(default="*")

    log_level: str = Field(default="INFO")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("cookie_samesite")
    @classmethod
    def validate_samesite(cls, v: str) -> str:
        lower = v.lower()
        if lower not in {"lax", "strict", "none"}:
            raise ValueError(f"Invalid cookie_samesite '{v}'. Must be one of: lax, strict, none")
        return lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {sorted(valid_levels)}")
        return upper

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def cookie_secure_effective(self) -> bool:
        # Browsers drop SameSite=None cookies that are not Secure
        return self.cookie_secure or self.cookie_samesite == "none"


settings = Settings()
