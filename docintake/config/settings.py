from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docintake"
    db_username: str = "docintake"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_connect_timeout_seconds: int = 10
    db_statement_timeout_seconds: int = 30
    db_pool_timeout_seconds: float = 30.0

    max_job_attempts: int = 3
    job_poll_interval_seconds: int = 5
    worker_concurrency: int = 4

    storage_backend: str = "local"
    files_root: str = "/app/files"
    storage_base_url: str = ""
    storage_api_key: str = ""
    storage_timeout_seconds: int = 60

    pdf_engine: str = "pdfplumber"
    pdf_subprocess_timeout_seconds: int = 30

    min_text_length: int = 50
    max_all_in_one_pages: int = 5
    all_in_one_max_bytes: int = 10 * 1024 * 1024

    ocr_provider: str = "openai"
    ocr_api_key: str = ""
    ocr_model_name: str = "gpt-4o-mini"
    ocr_base_url: str = ""
    ocr_timeout_seconds: int = 120
    ocr_pages_per_batch: int = 5
    ocr_max_pages: int = 50
    ocr_render_dpi: int = 150

    llm_provider: str = "openai"
    llm_api_key: str = ""
    llm_model_name: str = "gpt-4o-mini"
    llm_base_url: str = ""
    llm_timeout_seconds: int = 60
    llm_temperature: float = 0.1
    llm_complex_max_tokens: int = 3000
    llm_classifier_max_tokens: int = 2000

    retry_max_attempts: int = 3
    retry_initial_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 8.0

    document_types_schema_path: str = ""

    boundary_max_chars: int = 750_000
    marker_line_tolerance: int = 2
