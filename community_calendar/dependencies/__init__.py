from community_calendar.dependencies.auth import (
    verify_admin_password,
    verify_cron_secret,
)
from community_calendar.dependencies.services import (
    get_calendar_sync_service,
    get_event_sources_config,
    get_moderation_service,
    get_snapshot_store,
    get_source_cache,
)

__all__ = [
    "verify_admin_password",
    "verify_cron_secret",
    "get_calendar_sync_service",
    "get_event_sources_config",
    "get_moderation_service",
    "get_snapshot_store",
    "get_source_cache",
]
