import logging
import sys
from typing import Optional
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_INFO_TIMEOUT_MS = 30_000
DEFAULT_DOWNLOAD_TIMEOUT_MS = 300_000
DEFAULT_MAX_AGE_MINUTES = 30

class RetentionPolicy(BaseModel):
    """Age-based retention for the output directory"""
    model_config = {"frozen": True}

    interval_minutes: int = Field(default=0, description="Sweep period, 0 disables periodic sweeping")
    max_age_minutes: int = Field(default=DEFAULT_MAX_AGE_MINUTES, ge=0, description="Files older than this are deleted")

class Settings(BaseSettings):
    """Process-wide configuration, loaded once at startup"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    host: str = Field(default="localhost", validation_alias="HOST")
    port: int = Field(..., ge=1, le=65535, validation_alias="PORT")
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    server_url: Optional[str] = Field(default=None, validation_alias="SERVER_URL", description="Public base URL for download links")
    cors_origin: str = Field(default="http://localhost:5173", validation_alias="CORS_ORIGIN")

    output_path: str = Field(..., validation_alias="YTDLP_OUTPUT_PATH", description="Directory yt-dlp writes into")
    cookies_from_browser: Optional[str] = Field(default=None, validation_alias="YTDLP_COOKIES_FROM_BROWSER")
    max_file_size: Optional[str] = Field(default=None, validation_alias="YTDLP_MAX_FILE_SIZE", description="e.g. 500M")
    rate_limit: Optional[str] = Field(default=None, validation_alias="YTDLP_RATE_LIMIT", description="e.g. 2M")
    default_format: str = Field(default="best", validation_alias="YTDLP_DEFAULT_FORMAT")

    # Reported only, never enforced
    max_concurrent_downloads: int = Field(default=3, ge=1, validation_alias="MAX_CONCURRENT_DOWNLOADS")
    download_timeout_ms: Optional[int] = Field(default=None, gt=0, validation_alias="DOWNLOAD_TIMEOUT")

    file_cleanup_interval: int = Field(default=0, validation_alias="FILE_CLEANUP_INTERVAL", description="Minutes")
    file_max_age: Optional[int] = Field(default=None, ge=0, validation_alias="FILE_MAX_AGE", description="Minutes")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_rich: bool = Field(default=True, validation_alias="LOG_RICH")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @property
    def info_timeout(self) -> float:
        """Metadata fetch timeout in seconds"""
        return (self.download_timeout_ms or DEFAULT_INFO_TIMEOUT_MS) / 1000

    @property
    def download_timeout(self) -> float:
        """Full download timeout in seconds"""
        return (self.download_timeout_ms or DEFAULT_DOWNLOAD_TIMEOUT_MS) / 1000

    @property
    def public_base_url(self) -> str:
        base = self.server_url or f"http://{self.host}:{self.port}"
        return base.rstrip("/")

    @property
    def retention(self) -> RetentionPolicy:
        if self.file_max_age is not None:
            max_age = self.file_max_age
        elif self.file_cleanup_interval > 0:
            max_age = self.file_cleanup_interval
        else:
            max_age = DEFAULT_MAX_AGE_MINUTES
        return RetentionPolicy(interval_minutes=self.file_cleanup_interval, max_age_minutes=max_age)

    def public_view(self) -> dict:
        """Active configuration as echoed by /api/config"""
        return {
            "host": self.host,
            "port": self.port,
            "environment": self.environment,
            "serverUrl": self.server_url,
            "corsOrigin": self.cors_origin,
            "ytdlpCookiesFromBrowser": self.cookies_from_browser,
            "ytdlpOutputPath": self.output_path,
            "ytdlpMaxFileSize": self.max_file_size,
            "ytdlpRateLimit": self.rate_limit,
            "maxConcurrentDownloads": self.max_concurrent_downloads,
            "downloadTimeout": self.download_timeout_ms,
            "fileCleanupInterval": self.file_cleanup_interval,
            "fileMaxAge": self.retention.max_age_minutes,
        }

def load_settings() -> Settings:
    """Load configuration from the environment, exiting if required values are missing"""
    try:
        return Settings()
    except ValidationError as e:
        missing = [str(err["loc"][0]) for err in e.errors() if err["type"] == "missing"]
        if missing:
            logger.critical(f"Missing required environment variables: {', '.join(missing)}")
        else:
            logger.critical(f"Invalid configuration: {e}")
        sys.exit(1)
