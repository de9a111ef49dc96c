from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Optional

from nomie.models.prompts import PromptManager
from .types import ALLERGY_CONFLICT, BuiltPrompt, EncodedImage, PromptRequest, RecipeMode

logger = logging.getLogger(__name__)

USER_PROMPT_PLACEHOLDER = "{USER_PROMPT_PLACEHOLDER}"
ALLERGIES_PLACEHOLDER = "{ALLERGIES_PLACEHOLDER}"
NO_USER_TEXT = "None provided."

PROMPT_NAMES = {
    RecipeMode.STRICT: "recipes/strict",
    RecipeMode.FLEXIBLE: "recipes/flexible",
}

_PLACEHOLDER_RE = re.compile("|".join(re.escape(p) for p in (USER_PROMPT_PLACEHOLDER, ALLERGIES_PLACEHOLDER)))


def substitute_placeholders(template: str, values: Dict[str, str]) -> str:
    """Literal single-pass replacement; substituted text is never rescanned."""
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(0)], template)


class PromptTemplateBuilder:
    def __init__(self, prompts: Optional[PromptManager] = None, version: str = "v1"):
        self.prompts = prompts or PromptManager()
        self.version = version

    def prompt_ref(self, mode: RecipeMode) -> str:
        return f"{PROMPT_NAMES[mode]}@{self.version}"

    def build(self, request: PromptRequest, encoded: Optional[EncodedImage] = None) -> BuiltPrompt:
        prompt_ref = self.prompt_ref(request.mode)
        system_msg, user_msg = self.prompts.render(prompt_ref, {
            "sentinel": ALLERGY_CONFLICT,
            "extra_system": (request.extra_system or "").strip(),
        })

        system_msg = {"role": "system", "content": system_msg["content"].strip()}
        user_prompt = substitute_placeholders(user_msg["content"].strip(), {
            USER_PROMPT_PLACEHOLDER: request.user_text if request.has_text else NO_USER_TEXT,
            ALLERGIES_PLACEHOLDER: request.allergies.for_template(),
        })

        content: List[Dict[str, Any]] = []
        if encoded is not None:
            content.append({"type": "image_url", "image_url": {"url": encoded.data_uri}})
        content.append({"type": "text", "text": f"Allergy hard bans: {request.allergies.for_hard_ban()}"})
        content.append({"type": "text", "text": user_prompt})

        logger.debug(f"Built {prompt_ref} prompt with {len(content)} content parts")
        return BuiltPrompt(
            messages=[system_msg, {"role": "user", "content": content}],
            prompt_ref=prompt_ref,
            user_prompt=user_prompt,
        )
