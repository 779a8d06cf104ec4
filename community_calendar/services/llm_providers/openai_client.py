import time
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from community_calendar.config import settings
from community_calendar.services.llm_interface import LLMInterface
from community_calendar.utils.logger import setup_logger

logger = setup_logger("openai_client")


class OpenAIClient(LLMInterface):
    """
    LLM Client implementation for OpenAI API.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        default_model: str = settings.default_openai_model,
        timeout: float = settings.llm_timeout_seconds,
    ):
        if not api_key:
            logger.error("OpenAI API key is required but not provided")
            raise ValueError("OpenAI API key is required.")

        self.api_key = api_key
        self.base_url = base_url
        self.default_model = default_model

        logger.debug(
            f"Initializing OpenAI client with model: {default_model}, base_url: {base_url or 'Default'}"
        )

        # Retries are handled by the caller so that they are logged per post
        client_args = {"api_key": self.api_key, "timeout": timeout, "max_retries": 0}
        if self.base_url:
            client_args["base_url"] = self.base_url

        try:
            self._client = AsyncOpenAI(**client_args)
            logger.info(
                f"OpenAI client initialized successfully. Base URL: {'Default' if not self.base_url else self.base_url}, Default Model: {self.default_model}"
            )
        except Exception as e:
            logger.error(f"Failed to initialize OpenAI client: {e}", exc_info=True)
            raise

    async def generate_chat_completion(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        if not messages:
            logger.error("Empty messages list provided to generate_chat_completion")
            raise ValueError("Messages list cannot be empty")

        effective_model = self.default_model
        max_tokens = max_tokens or settings.llm_extraction_max_tokens

        logger.debug(
            f"generate_chat_completion called with {len(messages)} messages, temperature: {temperature}, max_tokens: {max_tokens}, model: {effective_model}"
        )

        request_params = {
            "model": effective_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            **kwargs,
        }
        response_format_arg = kwargs.get("response_format")
        if (
            isinstance(response_format_arg, dict)
            and response_format_arg.get("type") == "json_object"
        ):
            logger.debug(f"OpenAI client: JSON mode requested for model {effective_model}.")

        start_time = time.perf_counter()
        try:
            response_data = await self._client.chat.completions.create(**request_params)
            response_dict = response_data.model_dump()

            content_length = 0
            if response_dict.get("choices"):
                content = response_dict["choices"][0].get("message", {}).get("content") or ""
                content_length = len(content)
            else:
                logger.warning("No choices found in OpenAI chat completion response")

            duration = time.perf_counter() - start_time
            logger.info(
                f"OpenAI chat completion for model {effective_model} completed in {duration:.4f}s. "
                f"Input: {len(messages)} messages, output: {content_length} chars"
            )
            if duration > 30:
                logger.warning(f"Slow chat completion response: {duration:.4f}s")

            return response_dict

        except OpenAIError as e:
            duration = time.perf_counter() - start_time
            logger.error(
                f"OpenAI API error during chat completion for model {effective_model} after {duration:.4f}s: "
                f"{type(e).__name__}: {e}"
            )
            raise
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(
                f"Unexpected error during OpenAI chat completion for model {effective_model} after {duration:.4f}s: "
                f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            raise

    async def close(self):
        logger.info("Closing OpenAI client.")
        try:
            await self._client.close()
            logger.info("OpenAI client closed successfully.")
        except Exception as e:
            logger.error(f"Error closing OpenAI client: {e}", exc_info=True)
            raise
