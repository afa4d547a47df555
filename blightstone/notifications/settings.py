from pydantic_settings import BaseSettings

from blightstone.settings import ROOT_ENV


class EmailSettings(BaseSettings):
    # Resend (optional - emails are only logged when no key is set)
    RESEND_API_KEY: str | None = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    EMAIL_FROM: str = "noreply@blightstone.com"
    ORGANIZATION_NAME: str = "Blightstone"
    EMAIL_TIMEOUT_SECONDS: float = 10.0

    class Config:
        env_file = ROOT_ENV
        extra = "ignore"

    @property
    def delivery_enabled(self) -> bool:
        return bool(self.RESEND_API_KEY)


email_settings = EmailSettings()
