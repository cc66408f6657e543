"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "pressr"
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    log_json: bool = False

    host: str = "127.0.0.1"
    port: int = 8000

    # Run defaults used by the CLI and the API
    default_requests: int = 100
    default_concurrency: int = 10
    default_timeout_seconds: float = 30.0

    reports_dir: str = "reports"

    # Percentile histogram bounds (milliseconds)
    histogram_lowest_ms: int = 1
    histogram_highest_ms: int = 3_600_000
    histogram_significant_figures: int = 3

    progress_interval: int = 10

    model_config = {"env_prefix": "PRESSR_", "env_file": ".env", "extra": "ignore"}


settings = Settings()
