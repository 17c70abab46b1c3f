from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "hackscore-dispatcher"

    env: str = "development"

    SUPABASE_URL: str = "http://127.0.0.1:54321"
    SUPABASE_SERVICE_ROLE_KEY: str = ""

    QUEUE_NAME: str = "repo_analysis_queue"
    QUEUE_VISIBILITY_TIMEOUT: int = 300
    JOB_STATUS_TABLE: str = "job_status"

    REMOTE_WORKER_URL: str = "http://host.docker.internal:8080"
    REMOTE_WORKER_AUTH_TOKEN: str = ""
    # /process answers only once the analysis is done, which can take the better part of an hour
    REMOTE_WORKER_TIMEOUT_SECONDS: float = 3600.0
    REMOTE_WORKER_CONNECT_TIMEOUT_SECONDS: float = 10.0

    DISPATCH_POLL_INTERVAL_SECONDS: float = 60.0
    HANDOFF_DRAIN_TIMEOUT_SECONDS: float = 10.0

    LOG_LEVEL: str = "INFO"
    OTEL_LOGS_ENABLED: bool = False
    OTEL_SERVICE_NAME: str = "hackscore-dispatcher"

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000


settings = Settings()
