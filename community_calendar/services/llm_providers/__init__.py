from community_calendar.services.llm_providers.openai_client import OpenAIClient

__all__ = ["OpenAIClient"]
