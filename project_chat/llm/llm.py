import logging
from typing import Any, Dict, List, Optional, Union

import litellm
import stamina

logger = logging.getLogger(__name__)

# Drop unsupported provider/model params automatically (e.g., O-series temperature)
litellm.drop_params = True


def is_o_series_model(model_name: str) -> bool:
    """Return True for OpenAI O-series models (e.g., o1, o1-mini, o3, o4-mini)."""
    if not model_name:
        return False
    name = model_name.strip().lower()
    # O-series models start with 'o' (not to be confused with gpt-4o which starts with 'gpt')
    return name.startswith("o") and not name.startswith("gpt")


def get_temperature(model: str) -> float:
    """
    Get the temperature setting for a given model.

    Args:
        model: The model name

    Returns:
        float: Temperature value (1.0 for o-series models or gemini models, 0.1 otherwise)
    """
    if not model:
        return 0.1

    model_lower = model.strip().lower()

    # O-series models require temperature=1
    if is_o_series_model(model):
        return 1.0

    if model_lower.startswith("gemini/"):
        return 1.0

    return 0.1


def is_retryable_error(exception) -> bool:
    """
    Check if an exception is retryable based on error patterns.

    Args:
        exception: The exception to check

    Returns:
        bool: True if the exception is retryable, False otherwise
    """
    if not isinstance(exception, Exception):
        return False

    error_message = str(exception).lower()

    retryable_patterns = [
        "503",
        "529",
        "model is overloaded",
        "overloaded",
        "unavailable",
        "rate limit",
        "timeout",
        "connection error",
        "internal server error",
        "service unavailable",
        "temporarily unavailable",
    ]

    for pattern in retryable_patterns:
        if pattern in error_message:
            return True

    return False


def tool_definitions(declarations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert {name, description, input_schema} declarations to OpenAI function-calling format."""
    return [
        {
            "type": "function",
            "function": {
                "name": d["name"],
                "description": d.get("description", ""),
                "parameters": d.get("input_schema") or {"type": "object", "properties": {}},
            },
        }
        for d in declarations
    ]


@stamina.retry(on=is_retryable_error)
async def _litellm_acompletion_with_retry(
    model: str,
    messages: list,
    api_key: Optional[str] = None,
    max_tokens: Optional[int] = None,
    tools: Optional[List[Dict]] = None,
    tool_choice: Optional[Union[str, Dict]] = None,
    stream: bool = False,
):
    """
    Make an LLM call with stamina retry mechanism.

    With stream=True only opening the stream is retried; failures after the first
    chunk propagate to the caller.

    Args:
        model: The LLM model to use
        messages: The messages to send
        api_key: The API key (litellm falls back to provider env vars when None)
        max_tokens: Maximum tokens in the response
        tools: Optional list of tools/functions for the model to call
        tool_choice: Optional tool choice parameter ("auto", "none", or specific function)
        stream: Return an async stream of chunks instead of a full response

    Returns:
        The LLM response, or a chunk stream when stream=True

    Raises:
        Exception: If the call fails after all retries
    """
    params = {
        "model": model,
        "messages": messages,
        "temperature": get_temperature(model),
        "stream": stream,
    }
    if api_key:
        params["api_key"] = api_key
    if max_tokens:
        params["max_tokens"] = max_tokens

    if tools:
        params["tools"] = tools
        params["tool_choice"] = tool_choice if tool_choice is not None else "auto"

    return await litellm.acompletion(**params)


async def agent_completion_stream(
    model: str,
    messages: list,
    api_key: Optional[str] = None,
    max_tokens: Optional[int] = None,
    tools: Optional[List[Dict]] = None,
    tool_choice: Optional[Union[str, Dict]] = None,
):
    """
    Public wrapper for chat use. Opens one streaming LLM completion with optional tools.
    """
    return await _litellm_acompletion_with_retry(
        model=model,
        messages=messages,
        api_key=api_key,
        max_tokens=max_tokens,
        tools=tools,
        tool_choice=tool_choice,
        stream=True,
    )
