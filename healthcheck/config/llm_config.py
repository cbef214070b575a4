"""LLM configuration for the AI gateway.

The symptom classifier talks to an OpenAI-compatible chat completions
gateway. A single model is used; it is created lazily and shared by every
wizard in the process.
"""

from langchain_openai import ChatOpenAI
from langchain_core.language_models import BaseChatModel
from healthcheck.config.settings import settings
from typing import Optional
from pydantic import SecretStr
import logging

logger = logging.getLogger(__name__)

_classifier_model: Optional[BaseChatModel] = None


class GatewayNotConfiguredError(RuntimeError):
    """Raised when the AI gateway API key is missing."""


def _create_model(model_name: str) -> BaseChatModel:
    """Instantiate a ChatOpenAI client pointed at the AI gateway."""
    logger.info(f"Creating AI gateway client: {model_name}")
    return ChatOpenAI(
        base_url=settings.ai_gateway_endpoint,
        api_key=SecretStr(settings.ai_gateway_api_key),
        model=model_name,
        temperature=settings.model_temperature,
        max_completion_tokens=settings.model_max_tokens,
        max_retries=0,
    )


def get_classifier_model() -> BaseChatModel:
    """Shared chat model used for symptom classification."""
    global _classifier_model

    if _classifier_model is not None:
        return _classifier_model

    if not settings.ai_gateway_api_key:
        raise GatewayNotConfiguredError("AI_GATEWAY_API_KEY is not configured")

    _classifier_model = _create_model(settings.classifier_model)
    logger.info(
        f"AI gateway client initialized (model={settings.classifier_model}, "
        f"max_tokens={settings.model_max_tokens})"
    )
    return _classifier_model
