"""
Process-wide configuration.

Loaded once at startup from YAML (`config.yaml` shipped inside the package,
or the file named by the NOMIE_CONFIG environment variable). The
`providers` and `tasks` sections are handed to the ModelManager as-is;
the other sections become frozen dataclasses.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
import math
import os
import yaml

CONFIG_ENV_VAR = "NOMIE_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


@dataclass(frozen=True)
class ServerConfig:
    cors_allow_origins: Tuple[str, ...] = ()
    cors_max_age: int = 86400


@dataclass(frozen=True)
class ImageConfig:
    max_base64_bytes: int = math.floor(3.7 * 1024 * 1024)
    start_long_edge: int = 1280
    start_quality: float = 0.7
    min_quality: float = 0.4
    quality_step: float = 0.1
    shrink_ratio: float = 0.8
    max_attempts: int = 5


@dataclass(frozen=True)
class PipelineConfig:
    task: str = "recipes"
    prompt_version: str = "v1"
    strip_compliance_line: bool = True


@dataclass(frozen=True)
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    providers: Dict[str, Any] = field(default_factory=dict)
    tasks: Dict[str, Any] = field(default_factory=dict)

    @property
    def model_config(self) -> Dict[str, Any]:
        return {"providers": self.providers, "tasks": self.tasks}


def validate_model_config(config: Dict[str, Any]) -> Dict[str, Any]:
    if not config.get('providers'):
        raise ValueError("Config missing 'providers'")
    if not config.get('tasks'):
        raise ValueError("Config missing 'tasks'")

    for task_name, task_cfg in config['tasks'].items():
        if 'provider' not in task_cfg:
            raise ValueError(f"Task '{task_name}' missing provider")
        if 'model' not in task_cfg:
            raise ValueError(f"Task '{task_name}' missing model")
        if task_cfg['provider'] not in config['providers']:
            raise ValueError(f"Task '{task_name}' references unknown provider '{task_cfg['provider']}'")
    return config


def _section(cls, raw: Optional[Dict[str, Any]]):
    raw = raw or {}
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")
    values = dict(raw)
    if cls is ServerConfig and 'cors_allow_origins' in values:
        values['cors_allow_origins'] = tuple(values['cors_allow_origins'] or ())
    return cls(**values)


def resolve_config_path(path: Union[str, Path, None] = None) -> Path:
    return Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)


def load_config(path: Union[str, Path, None] = None) -> AppConfig:
    config_path = resolve_config_path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")
    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    validate_model_config(raw)
    return AppConfig(
        server=_section(ServerConfig, raw.get('server')),
        image=_section(ImageConfig, raw.get('image')),
        pipeline=_section(PipelineConfig, raw.get('pipeline')),
        providers=raw['providers'],
        tasks=raw['tasks'],
    )
