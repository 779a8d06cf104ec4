"""
Common utilities package for the community calendar.

Logging, upstream retry, LLM JSON parsing and text helpers used by the
source adapters.
"""

from community_calendar.utils.json_parser import (
    extract_events_payload,
    extract_json_from_llm_response,
)
from community_calendar.utils.logger import setup_logger
from community_calendar.utils.retry_utils import (
    async_retry,
    is_retryable_upstream_error,
)
from community_calendar.utils.text_processing import (
    find_image_urls,
    normalize_title,
    replace_google_tracking_urls,
    strip_html,
    titles_related,
    unique_preserving_order,
)

__all__ = [
    # JSON parsing utilities
    "extract_json_from_llm_response",
    "extract_events_payload",
    # Logging utilities
    "setup_logger",
    # Retry utilities
    "async_retry",
    "is_retryable_upstream_error",
    # Text utilities
    "find_image_urls",
    "normalize_title",
    "replace_google_tracking_urls",
    "strip_html",
    "titles_related",
    "unique_preserving_order",
]
