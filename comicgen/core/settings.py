from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = Field(default="sqlite+pysqlite:///./dev.db", validation_alias="DATABASE_URL")
    db_auto_create: bool = Field(default=True, validation_alias="DB_AUTO_CREATE")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")

    gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    gemini_text_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_TEXT_MODEL")
    gemini_image_model: str = Field(default="gemini-2.5-flash-image", validation_alias="GEMINI_IMAGE_MODEL")
    gemini_timeout_seconds: float = Field(default=60.0, validation_alias="GEMINI_TIMEOUT_SECONDS")

    image_max_attempts: int = Field(default=3, ge=1, validation_alias="IMAGE_MAX_ATTEMPTS")
    image_retry_delay_seconds: float = Field(default=1.0, ge=0, validation_alias="IMAGE_RETRY_DELAY_SECONDS")
    parallel_panel_generation: bool = Field(default=True, validation_alias="PARALLEL_PANEL_GENERATION")

    supabase_url: str | None = Field(default=None, validation_alias="SUPABASE_URL")
    supabase_anon_key: str | None = Field(default=None, validation_alias="SUPABASE_ANON_KEY")
    comic_storage_bucket: str = Field(default="comic-images", validation_alias="COMIC_STORAGE_BUCKET")
    trusted_image_host: str | None = Field(default=None, validation_alias="TRUSTED_IMAGE_HOST")

    # Comma separated, e.g. CORS_ORIGINS=http://localhost:3000,https://comics.example.com
    cors_origins_value: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        validation_alias="CORS_ORIGINS",
    )

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins_value.split(",") if origin.strip()]

    @property
    def storage_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def image_host(self) -> str:
        """Host that gallery image URLs must be served from."""
        if self.trusted_image_host:
            return self.trusted_image_host.lower()
        if self.supabase_url:
            host = urlparse(self.supabase_url).hostname
            if host:
                return host.lower()
        return "supabase.co"


settings = Settings()
