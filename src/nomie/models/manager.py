"""
Task routing for model calls.

A task (e.g. `recipes`) names a provider and a model in the config. The
manager builds provider clients lazily, sends each call exactly once and
keeps per-task call counters for the health endpoint.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
import logging
import time

from nomie.config import AppConfig, load_config, validate_model_config
from .providers.base import ChatRequest, ModelError, ModelProvider, ModelResponse
from .providers.openai_sdk import OpenAIProvider

logger = logging.getLogger(__name__)


def _openai_factory(settings: Dict[str, Any]) -> ModelProvider:
    return OpenAIProvider(**settings)


# provider `type` in the config -> client factory
PROVIDER_FACTORIES: Dict[str, Callable[[Dict[str, Any]], ModelProvider]] = {
    "openai": _openai_factory,
}


@dataclass
class TaskStats:
    total_calls: int = 0
    successful_calls: int = 0
    total_latency_ms: float = 0

    def record(self, latency_ms: float, success: bool) -> None:
        self.total_calls += 1
        if success:
            self.successful_calls += 1
            self.total_latency_ms += latency_ms


class ModelManager:
    def __init__(self, config: Union[AppConfig, Dict[str, Any], Path, str, None] = None):
        if isinstance(config, AppConfig):
            config = config.model_config
        elif not isinstance(config, dict):
            config = load_config(config).model_config
        self.config = validate_model_config(config)
        self._providers: Dict[str, ModelProvider] = {}
        self._stats: Dict[str, TaskStats] = {}

    def _get_provider(self, provider_name: str) -> ModelProvider:
        provider = self._providers.get(provider_name)
        if provider is not None:
            return provider

        provider_cfg = self.config["providers"].get(provider_name)
        if provider_cfg is None:
            raise ValueError(f"Unknown provider: {provider_name}")

        provider_type = provider_cfg.get("type")
        factory = PROVIDER_FACTORIES.get(provider_type)
        if factory is None:
            raise ValueError(f"Unknown provider type: {provider_type}")

        try:
            provider = factory(provider_cfg.get("settings") or {})
        except Exception as e:
            # e.g. openai.OpenAIError when the API key variable is unset
            raise ModelError(f"Provider '{provider_name}' could not be initialized: {e}") from e
        self._providers[provider_name] = provider
        logger.info(f"Provider '{provider_name}' ready ({provider_type})")
        return provider

    def call(self, task: str, messages: List[Dict[str, Any]], **params_override) -> ModelResponse:
        task_cfg = self.config["tasks"].get(task)
        if task_cfg is None:
            raise ValueError(f"Unknown task: {task}")

        request = ChatRequest(
            model=task_cfg["model"],
            messages=messages,
            params={**(task_cfg.get("params") or {}), **params_override},
        )
        provider = self._get_provider(task_cfg["provider"])

        started = time.perf_counter()
        try:
            response = provider.chat(request)
        except ModelError as e:
            self._record(task, started, success=False)
            logger.error(f"Task '{task}' failed on {task_cfg['provider']}/{request.model}: {e}")
            raise
        self._record(task, started, success=True)
        return response

    def _record(self, task: str, started: float, success: bool) -> None:
        latency_ms = (time.perf_counter() - started) * 1000
        self._stats.setdefault(task, TaskStats()).record(latency_ms, success)

    def get_stats(self, task: Optional[str] = None) -> Dict:
        if task:
            stats = self._stats.get(task)
            return asdict(stats) if stats else {}
        return {name: asdict(stats) for name, stats in self._stats.items()}

    def cleanup(self):
        """Close provider HTTP clients; failures are logged and skipped."""
        for name, provider in self._providers.items():
            client = getattr(provider, "client", None)
            close = getattr(client, "close", None)
            if close is None:
                continue
            try:
                close()
                logger.info(f"Closed provider client: {name}")
            except Exception as e:
                logger.error(f"Closing provider client {name} failed: {e}")
        self._providers.clear()

    @contextmanager
    def session(self):
        try:
            yield self
        finally:
            self.cleanup()
