from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    easyecom_base_url: str = "https://api.easyecom.io"
    easyecom_jwt: str = ""
    easyecom_api_key: str = ""
    easyecom_warehouse_id: str = ""
    backend_url: str = "http://localhost:3001"
    simulation_mode: bool = False

    http_timeout_seconds: int = 30
    poll_interval_seconds: float = 3.0
    poll_timeout_seconds: float = 120.0

    state_backend: str = "file"
    state_file: str = "data/state.json"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "reportdesk"
    db_username: str = "reportdesk"
    db_password: str = "secret"

    relay_host: str = "0.0.0.0"
    relay_port: int = 3001
