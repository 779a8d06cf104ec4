"""
Event Extractor - LLM-powered reading of events out of post captions and flyers.

The extractor only reports the date fragments the post actually contains;
turning them into concrete instants is the date resolver's job.
"""

from abc import ABC, abstractmethod

from pydantic import ValidationError

from community_calendar.config import settings
from community_calendar.prompts import (
    EXTRACT_POST_EVENTS_SYSTEM_PROMPT,
    EXTRACT_POST_EVENTS_USER_PROMPT,
)
from community_calendar.schemas import (
    ExtractionContext,
    ExtractionResponse,
    RawExtractedEvent,
)
from community_calendar.services.llm_interface import LLMInterface
from community_calendar.utils.json_parser import extract_events_payload
from community_calendar.utils.logger import setup_logger
from community_calendar.utils.retry_utils import async_retry

logger = setup_logger("event_extractor")


class EventExtractor(ABC):
    @abstractmethod
    async def extract(
        self, caption: str, ocr_text: str, context: ExtractionContext
    ) -> list[RawExtractedEvent]:
        """Return zero or more candidate events found in one post."""


class LLMEventExtractor(EventExtractor):
    """
    Extracts events with a chat-completion model in JSON mode.

    Transient provider errors are retried a bounded number of times with
    exponential backoff and re-raised once exhausted, so the caller can skip
    the post. A response that does not match the extraction schema counts as
    "no events".
    """

    def __init__(
        self,
        llm_client: LLMInterface,
        max_attempts: int = settings.llm_max_retries,
        retry_delay_seconds: float = settings.llm_retry_delay_seconds,
    ):
        self.llm_client = llm_client
        self._complete = async_retry(
            max_retries=max_attempts, delay_seconds=retry_delay_seconds
        )(self._request_completion)

    @staticmethod
    def build_messages(
        caption: str, ocr_text: str, context: ExtractionContext
    ) -> list[dict[str, str]]:
        user_prompt = EXTRACT_POST_EVENTS_USER_PROMPT.format(
            source_name=context.source_name,
            context_clues=", ".join(context.context_clues) or "none",
            post_date=context.post_date_text,
            caption=caption or "(no caption)",
            ocr_text=ocr_text or "(no text found on images)",
        )
        return [
            {"role": "system", "content": EXTRACT_POST_EVENTS_SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

    async def _request_completion(self, messages: list[dict[str, str]]) -> str:
        response = await self.llm_client.generate_chat_completion(
            messages,
            temperature=0.0,
            response_format={"type": "json_object"},
        )
        choices = response.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""

    async def extract(
        self, caption: str, ocr_text: str, context: ExtractionContext
    ) -> list[RawExtractedEvent]:
        log_prefix = f"[Extract {context.source_name} {context.post_date.date().isoformat()}]"
        messages = self.build_messages(caption, ocr_text, context)

        content = await self._complete(messages)
        if not content:
            logger.warning(f"{log_prefix} Empty completion; treating as no events")
            return []

        payload = extract_events_payload(content)
        if payload is None:
            logger.warning(
                f"{log_prefix} Completion is not valid JSON; treating as no events. Head: {content[:150]!r}"
            )
            return []

        try:
            parsed = ExtractionResponse.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                f"{log_prefix} Completion does not match the extraction schema ({e.error_count()} errors); treating as no events"
            )
            return []

        logger.debug(f"{log_prefix} Model reported {len(parsed.events)} candidate event(s)")
        return parsed.events
