from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./data/db.sqlite3"
    api_key: str = ""  # empty = no auth check (local dev)
    log_level: str = "INFO"
    strict_config: bool = False
    data_dir: str = "./data"
    max_upload_size_bytes: int = 1024 * 1024 * 1024  # 1GB
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_tag_model: str = "gpt-4o-mini"
    openai_timeout_seconds: int = 60

    xai_api_key: str = ""
    elevenlabs_api_key: str = ""

    daytona_api_key: str = ""
    daytona_api_url: str = "https://app.daytona.io/api"
    daytona_target: str = ""
    sandbox_snapshot: str = ""
    sandbox_create_attempts: int = 3
    sandbox_backoff_base_seconds: float = 2.0

    luma_api_key: str = ""
    luma_base_url: str = "https://api.lumalabs.ai/dream-machine/v1"
    luma_timeout_seconds: int = 30

    batch_size: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
