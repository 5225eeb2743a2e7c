from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Configuration
    debug: bool = False
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"

    # Storage Configuration
    # "sql" uses the relational backend below, "local" the JSON-file fallback store
    storage_backend: str = "sql"
    database_url: str = "sqlite:///./data/testdeck.db"
    local_storage_dir: str = "./data/local"

    # CSV Import
    import_scan_limit: int = 20
    default_section_title: str = "Uncategorized"
    import_session_ttl_seconds: float = 1800.0

    # Accounts
    # Created on first login when the user table is empty
    seed_admin_email: str = "admin@company.com"
    seed_admin_name: str = "Admin"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
