"""
Versioned prompt templates.

Prompts live on disk as `<name>/<version>/{system.j2,user.j2,config.yaml}`
and are addressed as `name@version` (e.g. `recipes/strict@v1`). Jinja2
fills `{{ ... }}` variables. Single-brace tokens such as
`{USER_PROMPT_PLACEHOLDER}` are left alone by Jinja2 and substituted later;
`config.yaml` lists them under `placeholders` so a template that lost one
fails at load time instead of at request time.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging

import jinja2
import yaml

logger = logging.getLogger(__name__)

DEFAULT_PROMPTS_DIR = Path(__file__).parents[1] / "prompts"
SYSTEM_TEMPLATE = "system.j2"
USER_TEMPLATE = "user.j2"
PROMPT_CONFIG = "config.yaml"


@dataclass(frozen=True)
class PromptConfig:
    name: str
    version: str
    system_template: str
    user_template: str
    description: Optional[str] = None
    placeholders: Tuple[str, ...] = ()

    @property
    def ref(self) -> str:
        return f"{self.name}@{self.version}"

    def template_path(self, template_name: str) -> str:
        # loader paths are always forward-slash separated
        return f"{self.name}/{self.version}/{template_name}"


def split_ref(prompt_ref: str) -> Tuple[str, str]:
    name, sep, version = prompt_ref.rpartition("@")
    if not sep or not name or not version:
        raise ValueError(f"Invalid prompt reference: {prompt_ref}")
    return name, version


class PromptManager:
    def __init__(self, prompts_dir: Optional[Path] = None):
        self.prompts_dir = Path(prompts_dir or DEFAULT_PROMPTS_DIR)
        if not self.prompts_dir.is_dir():
            raise FileNotFoundError(f"Prompts dir not found: {self.prompts_dir}")

        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(self.prompts_dir)),
            undefined=jinja2.StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )
        self._prompts: Dict[str, PromptConfig] = {}

    def load_prompt(self, prompt_ref: str) -> PromptConfig:
        cached = self._prompts.get(prompt_ref)
        if cached is not None:
            return cached

        name, version = split_ref(prompt_ref)
        prompt_dir = self.prompts_dir / name / version
        if not prompt_dir.is_dir():
            raise FileNotFoundError(f"Prompt not found: {prompt_dir}")

        meta = self._read_meta(prompt_dir)
        prompt = PromptConfig(
            name=name,
            version=version,
            system_template=self._read_template(prompt_dir, SYSTEM_TEMPLATE),
            user_template=self._read_template(prompt_dir, USER_TEMPLATE),
            description=meta.get("description"),
            placeholders=tuple(meta.get("placeholders") or ()),
        )
        self._check_placeholders(prompt)

        self._prompts[prompt_ref] = prompt
        logger.info(f"Loaded prompt {prompt_ref} ({len(prompt.placeholders)} placeholders)")
        return prompt

    def render(self, prompt_ref: str, variables: Dict[str, Any]) -> List[Dict[str, str]]:
        """Render the system and user templates into chat messages."""
        prompt = self.load_prompt(prompt_ref)

        try:
            system = self.jinja_env.get_template(prompt.template_path(SYSTEM_TEMPLATE)).render(variables)
            user = self.jinja_env.get_template(prompt.template_path(USER_TEMPLATE)).render(variables)
        except jinja2.UndefinedError as e:
            raise ValueError(f"Missing required variable in prompt {prompt_ref}: {e}") from e

        return [{"role": "system", "content": system}, {"role": "user", "content": user}]

    def clear_cache(self):
        self._prompts.clear()
        self.jinja_env.cache.clear()
        logger.debug("Prompt cache cleared")

    @staticmethod
    def _check_placeholders(prompt: PromptConfig) -> None:
        missing = [token for token in prompt.placeholders if token not in prompt.user_template]
        if missing:
            raise ValueError(f"Prompt {prompt.ref} user template is missing placeholders: {missing}")

    @staticmethod
    def _read_meta(prompt_dir: Path) -> Dict[str, Any]:
        meta_path = prompt_dir / PROMPT_CONFIG
        if not meta_path.is_file():
            return {}
        return yaml.safe_load(meta_path.read_text(encoding="utf-8")) or {}

    @staticmethod
    def _read_template(prompt_dir: Path, template_name: str) -> str:
        path = prompt_dir / template_name
        if not path.is_file():
            raise FileNotFoundError(f"Template file not found: {path}")
        return path.read_text(encoding="utf-8")
