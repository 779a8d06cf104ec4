"""
Centralized configuration management using pydantic-settings.
This module provides a single source of truth for all application configuration.
"""

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from community_calendar.utils.logger import setup_logger

load_dotenv(override=True)


logger = setup_logger("core_config")


class Settings(BaseSettings):
    """
    Application settings managed by pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
        env_prefix="",
    )

    # ===== OpenAI Configuration =====
    openai_api_key: str | None = Field(
        default=None,
        alias="OPENAI_API_KEY",
        description="OpenAI API key used for flyer/caption event extraction",
    )

    openai_base_url: str | None = Field(
        default=None,
        alias="OPENAI_BASE_URL",
        description="OpenAI API base URL, defaults to https://api.openai.com/v1",
    )

    default_openai_model: str = Field(
        default="gpt-4o-mini",
        alias="DEFAULT_OPENAI_MODEL",
        description="Default OpenAI model to use",
    )

    default_llm_provider: str = Field(
        default="openai",
        alias="DEFAULT_LLM_PROVIDER",
        description="LLM provider used for event extraction",
    )

    llm_timeout_seconds: float = Field(
        default=30.0,
        alias="LLM_TIMEOUT_SECONDS",
        description="Per-request timeout for LLM calls in seconds",
    )

    llm_max_retries: int = Field(
        default=3,
        alias="LLM_MAX_RETRIES",
        description="Attempts for a single LLM extraction before giving up on a post",
    )

    llm_retry_delay_seconds: float = Field(
        default=1.0,
        alias="LLM_RETRY_DELAY_SECONDS",
        description="Initial backoff between LLM retries in seconds",
    )

    llm_extraction_max_tokens: int = Field(
        default=2000,
        alias="LLM_EXTRACTION_MAX_TOKENS",
        description="Maximum completion tokens for one extraction call",
    )

    # ===== OCR Configuration =====
    enable_ocr: bool = Field(
        default=True,
        alias="ENABLE_OCR",
        description="Run Google Cloud Vision OCR on Instagram flyer images",
    )

    ocr_max_images_per_post: int = Field(
        default=3,
        alias="OCR_MAX_IMAGES_PER_POST",
        description="Number of images of one post sent to OCR",
    )

    # ===== Upstream API Credentials =====
    instagram_business_user_id: str | None = Field(
        default=None,
        alias="INSTAGRAM_BUSINESS_USER_ID",
        description="Business account used to run business_discovery queries",
    )

    instagram_user_access_token: str | None = Field(
        default=None,
        alias="INSTAGRAM_USER_ACCESS_TOKEN",
        description="Graph API access token for the business account",
    )

    instagram_graph_api_version: str = Field(
        default="v21.0",
        alias="INSTAGRAM_GRAPH_API_VERSION",
        description="Facebook Graph API version",
    )

    instagram_media_limit: int = Field(
        default=25,
        alias="INSTAGRAM_MEDIA_LIMIT",
        description="Recent posts requested per Instagram account",
    )

    google_calendar_api_key: str | None = Field(
        default=None,
        alias="GOOGLE_CALENDAR_API_KEY",
        description="Google Calendar API key",
    )

    eventbrite_api_key: str | None = Field(
        default=None,
        alias="EVENTBRITE_API_KEY",
        description="Eventbrite private token",
    )

    apify_api_token: str | None = Field(
        default=None,
        alias="APIFY_API_TOKEN",
        description="Apify API token for dataset reads",
    )

    # ===== GitHub Document Store =====
    github_token: str | None = Field(
        default=None,
        alias="GITHUB_TOKEN",
        description="Token used to read/write moderation documents",
    )

    github_owner: str = Field(
        default="lilyxia99",
        alias="GITHUB_OWNER",
        description="Owner of the repository holding the moderation documents",
    )

    github_repo: str = Field(
        default="triad.build",
        alias="GITHUB_REPO",
        description="Repository holding the moderation documents",
    )

    github_api_url: str = Field(
        default="https://api.github.com",
        alias="GITHUB_API_URL",
        description="GitHub REST API base URL",
    )

    approved_sources_document: str = Field(
        default="assets/event_sources.json",
        alias="APPROVED_SOURCES_DOCUMENT",
        description="Repository path of the approved sources document",
    )

    pending_submissions_document: str = Field(
        default="assets/incoming_event_source.json",
        alias="PENDING_SUBMISSIONS_DOCUMENT",
        description="Repository path of the pending submissions document",
    )

    # ===== Admin / Cron =====
    admin_password: str | None = Field(
        default=None,
        alias="ADMIN_PASSWORD",
        description="Shared password for admin moderation actions",
    )

    cron_secret: str | None = Field(
        default=None,
        alias="CRON_SECRET",
        description="Secret required to trigger a sync over HTTP",
    )

    # ===== Files =====
    assets_dir: Path = Field(
        default=Path("assets"),
        alias="ASSETS_DIR",
        description="Directory holding source config and scraped archives",
    )

    event_sources_file: Path = Field(
        default=Path("assets/event_sources.json"),
        alias="EVENT_SOURCES_FILE",
        description="Local source configuration file",
    )

    event_sources_env: str | None = Field(
        default=None,
        alias="EVENT_SOURCES_ENV",
        description="Extra Google Calendar sources as JSON, merged into the file config",
    )

    snapshot_file: Path = Field(
        default=Path("public/calendar_data.json"),
        alias="SNAPSHOT_FILE",
        description="Persisted snapshot consumed by the calendar front-end",
    )

    calendar_timezone: str = Field(
        default="America/New_York",
        alias="CALENDAR_TIMEZONE",
        description="Timezone used to interpret extracted wall-clock times",
    )

    # ===== Sync Driver =====
    sync_batch_size: int = Field(
        default=5,
        alias="SYNC_BATCH_SIZE",
        description="Sources fetched concurrently per batch",
    )

    sync_batch_delay_seconds: float = Field(
        default=2.0,
        alias="SYNC_BATCH_DELAY_SECONDS",
        description="Pause between batches to stay under upstream rate limits",
    )

    source_timeout_seconds: float = Field(
        default=300.0,
        alias="SOURCE_TIMEOUT_SECONDS",
        description="Upper bound for one source's whole fetch and extraction",
    )

    http_timeout_seconds: float = Field(
        default=30.0,
        alias="HTTP_TIMEOUT_SECONDS",
        description="Per-request timeout for upstream HTTP calls",
    )

    http_user_agent: str = Field(
        default="community-calendar/0.1 (+https://triad.build)",
        alias="HTTP_USER_AGENT",
        description="User-Agent sent to upstream APIs",
    )

    source_cache_ttl_seconds: int = Field(
        default=60 * 60 * 24,
        alias="SOURCE_CACHE_TTL_SECONDS",
        description="Lifetime of cached per-source fetch results",
    )

    duplicate_window_minutes: int = Field(
        default=60,
        alias="DUPLICATE_WINDOW_MINUTES",
        description="Max start-time distance for two same-day events to be duplicates",
    )

    # ===== Server Configuration =====
    server_host: str = Field(
        default="0.0.0.0", alias="SERVER_HOST", description="Server host address"
    )

    server_port: int = Field(
        default=8080, alias="SERVER_PORT", description="Server port number"
    )

    server_workers: int = Field(
        default=1, alias="SERVER_WORKERS", description="Number of uvicorn workers"
    )

    # ===== CORS Configuration =====
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "https://triad.build",
        ],
        alias="CORS_ALLOW_ORIGINS",
        description="CORS allowed origins",
    )

    cors_allow_credentials: bool = Field(
        default=True,
        alias="CORS_ALLOW_CREDENTIALS",
        description="Whether to allow credentials in CORS requests",
    )

    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_METHODS",
        description="CORS allowed methods",
    )

    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_HEADERS",
        description="CORS allowed headers",
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings and log warnings for missing credentials."""

        if not self.openai_api_key:
            logger.warning(
                "OPENAI_API_KEY environment variable not set. Instagram extraction is unavailable."
            )

        if not self.github_token:
            logger.warning(
                "GITHUB_TOKEN environment variable not set. Admin moderation is unavailable."
            )

        if not self.admin_password:
            logger.warning("ADMIN_PASSWORD environment variable not set.")

        logger.debug(f"Using snapshot file: {self.snapshot_file}")
        logger.debug(
            f"Sync batching: {self.sync_batch_size} sources, {self.sync_batch_delay_seconds}s delay"
        )

        return self


# Global settings instance
settings = Settings()
