"""Application configuration."""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4"

    # Twilio
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None

    # Public base URL Twilio uses to reach the webhooks (e.g. an ngrok tunnel)
    public_url: Optional[str] = None

    # Voice prompts
    voice: str = "Polly.Joanna-Neural"
    language: str = "en-US"
    default_script: str = "Hello, this is a courtesy call about our latest offer."
    affirmative_keyword: str = "more"
    negative_keyword: str = "contact"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def base_url(self) -> str:
        """Absolute base URL for webhook callbacks."""
        if self.public_url:
            return self.public_url.rstrip("/")
        return f"http://localhost:{self.port}"

    @property
    def text_generation_configured(self) -> bool:
        return bool(self.openai_api_key)

    def missing_twilio_settings(self) -> List[str]:
        """Names of Twilio settings that are not set."""
        required = {
            "TWILIO_ACCOUNT_SID": self.twilio_account_sid,
            "TWILIO_AUTH_TOKEN": self.twilio_auth_token,
            "TWILIO_PHONE_NUMBER": self.twilio_phone_number,
        }
        return [name for name, value in required.items() if not value]


settings = Settings()
