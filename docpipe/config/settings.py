from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docpipe"
    db_username: str = "docpipe"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    files_root: str = "/app/files"
    max_upload_size_bytes: int = 10 * 1024 * 1024

    max_job_attempts: int = 3
    job_backoff_base_seconds: float = 2.0
    job_processing_timeout_seconds: float = 120.0
    job_visibility_timeout_seconds: int = 600
    job_poll_interval_seconds: int = 5
    worker_concurrency: int = 2

    queue_backend: str = "postgres"
    store_backend: str = "postgres"

    notification_backend: str = "local"
    notification_channel: str = "file_status"
    heartbeat_timeout_seconds: int = 60
    heartbeat_sweep_interval_seconds: int = 15
    connection_outbox_size: int = 100

    pdf_engine: str = "pdfplumber"

    ocr_language: str = "eng"
    ocr_max_concurrency: int = 1
