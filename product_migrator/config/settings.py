from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    audit_db_host: str = "localhost"
    audit_db_port: int = 5432
    audit_db_database: str = "product_migrator"
    audit_db_username: str = "product_migrator"
    audit_db_password: str = "secret"
    audit_pool_max_size: int = 5

    oracle_user: str = ""
    oracle_password: str = ""
    oracle_dsn: str = ""
    oracle_lib_dir: str = ""
    oracle_pool_min: int = 1
    oracle_pool_max: int = 5
    oracle_pool_increment: int = 1
    oracle_schema_owner: str = "DBAMV"

    tenant_id: int = 4
    skip_tenant_context: bool = False
    only_operating_tenant: bool = True

    default_submitter: str = "unknown"
    recent_jobs_limit: int = 5
