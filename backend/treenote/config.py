from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str

    secret_key: str
    access_token_expire_minutes: int = 10080
    allow_registration: bool = True
    # Only the first account may register
    single_user: bool = True

    # Reject content edits on folders instead of ignoring them
    strict_content_edits: bool = False

    run_migrations: bool = True
    log_level: str = "INFO"

    rate_limit_enabled: bool = True
    auth_rate_limit: str = "10/minute"

    cors_origins: str = "http://localhost,http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
