from pydantic_settings import BaseSettings

from blightstone.settings import ROOT_ENV, app_settings


class AuthSettings(BaseSettings):
    # JWT Configuration
    JWT_SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Session Configuration
    SESSION_SECRET_KEY: str = "blightstone-change-me-in-production"
    SESSION_COOKIE_NAME: str = "blightstone.sid"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 24  # 24 hours
    SESSION_BACKEND: str = "memory"  # "memory" or "redis"
    SESSION_KEY_PREFIX: str = "blightstone:session"

    # Cookie Configuration (secure defaults to True in production)
    COOKIE_SECURE: bool | None = None
    COOKIE_SAMESITE: str = "lax"

    # Invitations
    INVITATION_EXPIRE_DAYS: int = 7
    DEFAULT_ROLE: str = "Team Member"
    ADMIN_ROLE: str = "Administrator"

    class Config:
        env_file = ROOT_ENV
        extra = "ignore"

    @property
    def cookie_secure(self) -> bool:
        if self.COOKIE_SECURE is None:
            return app_settings.is_production
        return self.COOKIE_SECURE


auth_settings = AuthSettings()
