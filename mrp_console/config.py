"""MRP console configuration — loaded from environment / .env file."""

from urllib.parse import urlsplit

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_APP_ID = "69957a3c9cf5cf00139a7aa7"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="ERPAI_", extra="ignore")

    env: str = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]  # Next.js dev

    # ERPAI backend
    base_url: str = "https://make-api.erpai.dev/api"
    token: str = ""
    app_id: str = DEFAULT_APP_ID
    http_timeout: float = 30.0

    # Agent chat relay
    ws_url: str = ""  # empty → derived from base_url
    submit_path: str = "/v1/app-builder/agent/message"
    max_duration: float = 300.0  # platform ceiling for one streamed request
    heartbeat_interval: float = 25.0
    completion_flush_delay: float = 1.5

    @property
    def agent_ws_url(self) -> str:
        if self.ws_url:
            return self.ws_url
        parts = urlsplit(self.base_url)
        scheme = "ws" if parts.scheme == "http" else "wss"
        return f"{scheme}://{parts.netloc}/ws"

    @property
    def submit_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.submit_path}"


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency — overridable in tests."""
    return settings
