"""Utility functions for LLM invocations and JSON extraction."""

import asyncio
import json
import logging
import re
from typing import Any, List, Optional
from langchain_core.messages import BaseMessage
from langchain_core.language_models.chat_models import BaseChatModel
from healthcheck.config.settings import settings

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```\s*$", re.DOTALL)


async def invoke_llm_with_timeout(
    llm: BaseChatModel,
    messages: List[BaseMessage],
    timeout: Optional[float] = None,
) -> Any:
    """
    Invoke an LLM, optionally bounded by a timeout.

    Args:
        llm: The language model to invoke
        messages: List of messages to send to the LLM
        timeout: Timeout in seconds (defaults to settings.llm_invoke_timeout;
            None means no timeout beyond the transport's own)

    Returns:
        LLM response

    Raises:
        asyncio.TimeoutError: If a timeout is set and exceeded
    """
    if timeout is None:
        timeout = settings.llm_invoke_timeout

    logger.info(f"📤 Invoking LLM (timeout={timeout})")

    try:
        if timeout is None:
            response = await llm.ainvoke(messages)
        else:
            response = await asyncio.wait_for(llm.ainvoke(messages), timeout=timeout)
        logger.info("✅ LLM responded successfully")
        return response

    except asyncio.TimeoutError:
        logger.error(f"⏱️ LLM invocation timed out after {timeout}s")
        raise

    except Exception as e:
        logger.error(f"❌ LLM invocation failed: {e}")
        raise


def response_text(response: Any) -> str:
    """Extract plain text from a chat model response."""
    content = getattr(response, "content", response)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Content blocks: [{"type": "text", "text": "..."}, ...]
        parts = []
        for block in content:
            if isinstance(block, dict):
                parts.append(str(block.get("text", "")))
            else:
                parts.append(str(block))
        return "".join(parts)
    return "" if content is None else str(content)


def strip_md_fences(text: str) -> str:
    """Strip markdown code fences that the LLM sometimes wraps JSON in.

    Handles patterns like:
        ```json\\n{...}\\n```
        ```\\n{...}\\n```
    """
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_json_object(text: str) -> dict:
    """Parse a JSON object out of model output.

    Raises:
        ValueError: If the text is empty, not JSON, or not a JSON object
    """
    cleaned = strip_md_fences(text or "")
    if not cleaned:
        raise ValueError("empty model output")
    data = json.loads(cleaned)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data
