"""Configuration settings for the intent detection harness"""

from pathlib import Path
from typing import Optional

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HarnessSettings(BaseSettings):
    """Harness settings, overridable through INTENT_HARNESS_* variables"""

    model_config = SettingsConfigDict(
        env_prefix="INTENT_HARNESS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Endpoint
    host: str = "localhost"
    port: int = 5552

    # Channel: plaintext and anonymous unless told otherwise
    use_tls: bool = False
    root_certificates: Optional[Path] = None
    access_token: Optional[SecretStr] = None

    # Per-call deadline in seconds, None waits forever
    timeout: Optional[float] = None

    # Session addressing
    project_id: str = "intent-harness-example"
    location_id: str = "us-central1"
    agent_id: str = "ef28899e-5401-465e-9352-2efc8a8ebef9"
    language_code: str = "en-us"

    # Bundled mock backend: answer streams last-first
    mock_reverse_stream: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @model_validator(mode="after")
    def _check_channel(self) -> "HarnessSettings":
        if self.access_token is not None and not self.use_tls:
            raise ValueError("access_token requires use_tls=True")
        if self.root_certificates is not None and not self.use_tls:
            raise ValueError("root_certificates requires use_tls=True")
        return self

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"


settings = HarnessSettings()
