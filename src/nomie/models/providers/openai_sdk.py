from __future__ import annotations
from typing import Any, Dict, Optional
import logging
import time
from os import getenv

from openai import OpenAI
from openai import APIError, APITimeoutError

from .base import ModelProvider, ChatRequest, ModelResponse, ModelError, ModelTimeout

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


def _usage(usage: Any) -> Optional[Dict[str, Any]]:
    if usage is None:
        return None
    if hasattr(usage, "model_dump"):
        return usage.model_dump()
    return {key: getattr(usage, key, None) for key in ("prompt_tokens", "completion_tokens", "total_tokens")}


class OpenAIProvider(ModelProvider):
    """Chat completions against any OpenAI-compatible endpoint (OpenAI, Groq, OpenRouter).

    A single call per request: failures are surfaced to the caller and never retried.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        api_key_env: str = "OPENAI_API_KEY",
        default_headers: Optional[Dict[str, str]] = None,
        timeout: float = 60.0,
        **kwargs,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.client = OpenAI(
            base_url=base_url,
            api_key=api_key or getenv(api_key_env),
            default_headers=default_headers or {},
            timeout=timeout,
            max_retries=0,
            **kwargs,
        )

    def chat(self, req: ChatRequest) -> ModelResponse:
        started = time.perf_counter()
        try:
            completion = self.client.chat.completions.create(model=req.model, messages=req.messages, **(req.params or {}))
        except APITimeoutError as e:
            raise ModelTimeout(f"Chat request to {req.model} timed out after {self.timeout}s: {e}") from e
        except APIError as e:
            raise ModelError(f"OpenAI API error: {e}") from e
        except Exception as e:
            raise ModelError(f"OpenAI provider error: {e}") from e
        latency = time.perf_counter() - started

        try:
            choice = completion.choices[0]
            content = choice.message.content or ""
        except (IndexError, AttributeError, TypeError) as e:
            raise ModelError(f"Invalid response structure from OpenAI API: {e}") from e

        meta: Dict[str, Any] = {
            "provider": "openai",
            "model": getattr(completion, "model", None) or req.model,
            "latency": latency,
            "base_url": self.base_url or DEFAULT_BASE_URL,
            "finish_reason": getattr(choice, "finish_reason", None),
            "id": getattr(completion, "id", None),
        }
        usage = _usage(getattr(completion, "usage", None))
        if usage:
            meta["usage"] = usage

        logger.info(f"chat completion model={meta['model']} latency={latency:.2f}s finish={meta['finish_reason']}")
        return ModelResponse(content=content, raw=completion, meta=meta)

    def health_check(self) -> bool:
        try:
            self.client.models.list()
        except Exception as e:
            logger.warning(f"Model endpoint health check failed: {e}")
            return False
        return True
