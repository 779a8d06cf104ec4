"""
LLM Service Manager - Centralized management of LLM provider clients.

Clients are created once per process (at application startup or on first
use) and closed together on shutdown.
"""

from typing import Any

from community_calendar.config import settings
from community_calendar.services.llm_interface import LLMInterface
from community_calendar.services.llm_providers.openai_client import OpenAIClient
from community_calendar.utils.logger import setup_logger

logger = setup_logger("llm_service_manager")

# Client instances cache
_initialized_clients: dict[str, LLMInterface] = {}

# Mapping of provider names to their constructor classes
_client_constructors: dict[str, type[LLMInterface]] = {
    "openai": OpenAIClient,
}


def _get_client_config(provider_name: str) -> dict[str, Any]:
    if provider_name == "openai":
        config = {
            "api_key": settings.openai_api_key,
            "base_url": settings.openai_base_url,
            "default_model": settings.default_openai_model,
            "timeout": settings.llm_timeout_seconds,
        }
        logger.debug(
            f"OpenAI config - base_url: {config['base_url']}, model: {config['default_model']}, api_key: {config['api_key'][:5] + '...' if config['api_key'] else 'None'}"
        )
        return config

    logger.warning(f"Unknown provider name: {provider_name}")
    return {}


def _build_client(provider_name: str) -> LLMInterface | None:
    config = _get_client_config(provider_name)
    if not config.get("api_key"):
        logger.warning(
            f"{provider_name.capitalize()} API key not configured. Skipping client initialization."
        )
        return None

    constructor_args = {k: v for k, v in config.items() if v is not None}
    try:
        return _client_constructors[provider_name](**constructor_args)
    except ValueError as ve:
        logger.error(f"Configuration error initializing {provider_name} client: {ve}")
    except Exception as e:
        logger.error(f"Failed to initialize {provider_name} client: {e}", exc_info=True)
    return None


def initialize_all_llm_clients():
    """Initialize all LLM clients based on available configuration."""
    logger.info("Initializing LLM clients based on available configuration...")

    initialization_results = {"successful": [], "skipped": []}
    for provider_name in _client_constructors:
        if provider_name in _initialized_clients:
            initialization_results["skipped"].append(provider_name)
            continue

        client = _build_client(provider_name)
        if client is None:
            initialization_results["skipped"].append(provider_name)
            continue

        _initialized_clients[provider_name] = client
        initialization_results["successful"].append(provider_name)

    logger.info(
        f"LLM client initialization complete. "
        f"Successful: {initialization_results['successful']}, "
        f"Skipped: {initialization_results['skipped']}"
    )


async def close_all_llm_clients():
    """Close all initialized LLM clients."""
    if not _initialized_clients:
        logger.info("No LLM clients to close.")
        return

    for provider_name, client_instance in _initialized_clients.items():
        try:
            await client_instance.close()
        except Exception as e:
            logger.error(f"Error closing {provider_name} client: {e}", exc_info=True)

    _initialized_clients.clear()
    logger.info("All LLM clients cleared from cache.")


def get_llm_client(provider_name: str | None = None) -> LLMInterface | None:
    """
    Get an initialized LLM client for the specified provider.

    Returns None if the provider is not available or not properly configured.
    """
    provider_name = (provider_name or settings.default_llm_provider).lower()
    client = _initialized_clients.get(provider_name)
    if client:
        return client

    if provider_name not in _client_constructors:
        logger.error(
            f"Unknown provider name: {provider_name}. Available providers: {list(_client_constructors.keys())}"
        )
        return None

    logger.info(
        f"{provider_name.capitalize()} client not pre-initialized. Attempting on-demand initialization."
    )
    client = _build_client(provider_name)
    if client is not None:
        _initialized_clients[provider_name] = client
    return client
