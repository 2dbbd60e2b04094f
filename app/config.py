from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Inbound auth for the tracker API. None disables the check.
    tracker_api_key: str | None = None
    log_level: str = "INFO"

    # Remote board service
    api_base_url: str = "https://bingoscape.org"
    api_key: str | None = None
    bingo_id: str | None = None  # Board to poll on startup (None = push-only)
    request_timeout_s: float = 10.0
    board_refresh_interval_s: float = 60.0  # 0 disables polling

    # Auto-submission
    auto_submission_enabled: bool = False  # Off by default
    auto_submit_loot: bool = True
    show_auto_submit_notifications: bool = True
    submission_cooldown_ms: int = 5000
    cooldown_sweep_interval_s: float = 30.0
    notification_feed_size: int = 50

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
