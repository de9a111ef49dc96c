# tests/prompts/test_prompts.py

import pytest
import tempfile
import shutil
from pathlib import Path

from nomie.models.prompts import PromptManager, PromptConfig


@pytest.fixture
def temp_prompts_dir():
    """Create a temporary prompts directory with test data"""
    temp_dir = tempfile.mkdtemp()
    prompts_path = Path(temp_dir)

    # Prompt with placeholders declared in config
    strict_v1 = prompts_path / "recipes" / "strict" / "v1"
    strict_v1.mkdir(parents=True)

    (strict_v1 / "config.yaml").write_text("""
description: "test strict prompt"
placeholders:
  - "{USER_PROMPT_PLACEHOLDER}"
""")
    (strict_v1 / "system.j2").write_text("""You are a recipe assistant.
Reply {{ sentinel }} when nothing is safe.
{% if extra_system %}
{{ extra_system }}
{% endif %}""")
    (strict_v1 / "user.j2").write_text("Text: {USER_PROMPT_PLACEHOLDER}\nSentinel: {{ sentinel }}")

    # Prompt without config file
    plain_v1 = prompts_path / "plain" / "test" / "v1"
    plain_v1.mkdir(parents=True)
    (plain_v1 / "system.j2").write_text("Simple system prompt.")
    (plain_v1 / "user.j2").write_text("User: {{ input }}")

    # Prompt with empty config
    minimal_v1 = prompts_path / "minimal" / "test" / "v1"
    minimal_v1.mkdir(parents=True)
    (minimal_v1 / "config.yaml").write_text("")
    (minimal_v1 / "system.j2").write_text("System.")
    (minimal_v1 / "user.j2").write_text("User.")

    yield prompts_path

    shutil.rmtree(temp_dir)


@pytest.fixture
def manager(temp_prompts_dir):
    return PromptManager(temp_prompts_dir)


class TestPromptLoading:
    def test_load_valid_prompt_with_config(self, manager):
        config = manager.load_prompt("recipes/strict@v1")

        assert config.name == "recipes/strict"
        assert config.version == "v1"
        assert config.ref == "recipes/strict@v1"
        assert config.description == "test strict prompt"
        assert config.placeholders == ("{USER_PROMPT_PLACEHOLDER}",)

    def test_load_prompt_without_config(self, manager):
        config = manager.load_prompt("plain/test@v1")

        assert config.description is None
        assert config.placeholders == ()

    def test_load_prompt_with_empty_config(self, manager):
        config = manager.load_prompt("minimal/test@v1")
        assert config.placeholders == ()

    def test_load_missing_prompt(self, manager):
        with pytest.raises(FileNotFoundError, match="Prompt not found"):
            manager.load_prompt("recipes/strict@v99")

    def test_invalid_reference(self, manager):
        with pytest.raises(ValueError, match="Invalid prompt reference"):
            manager.load_prompt("recipes/strict")

    def test_missing_user_template(self, temp_prompts_dir, manager):
        broken = temp_prompts_dir / "broken" / "test" / "v1"
        broken.mkdir(parents=True)
        (broken / "system.j2").write_text("System prompt")

        with pytest.raises(FileNotFoundError, match="Template file not found"):
            manager.load_prompt("broken/test@v1")

    def test_missing_declared_placeholder(self, temp_prompts_dir, manager):
        broken = temp_prompts_dir / "noplaceholder" / "test" / "v1"
        broken.mkdir(parents=True)
        (broken / "config.yaml").write_text('placeholders: ["{ALLERGIES_PLACEHOLDER}"]')
        (broken / "system.j2").write_text("System")
        (broken / "user.j2").write_text("No placeholder here")

        with pytest.raises(ValueError, match="missing placeholders"):
            manager.load_prompt("noplaceholder/test@v1")

    def test_prompts_are_cached(self, manager):
        first = manager.load_prompt("plain/test@v1")
        assert manager.load_prompt("plain/test@v1") is first

        manager.clear_cache()
        assert manager.load_prompt("plain/test@v1") is not first

    def test_missing_prompts_dir(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Prompts dir not found"):
            PromptManager(tmp_path / "nope")


class TestPromptRendering:
    def test_render_returns_system_and_user(self, manager):
        messages = manager.render("recipes/strict@v1", {"sentinel": "ALLERGY_CONFLICT", "extra_system": ""})

        assert [m["role"] for m in messages] == ["system", "user"]
        assert "Reply ALLERGY_CONFLICT" in messages[0]["content"]
        assert messages[0]["content"].rstrip().endswith("when nothing is safe.")

    def test_single_brace_placeholders_survive_jinja(self, manager):
        messages = manager.render("recipes/strict@v1", {"sentinel": "X", "extra_system": ""})
        assert "{USER_PROMPT_PLACEHOLDER}" in messages[1]["content"]
        assert "Sentinel: X" in messages[1]["content"]

    def test_extra_system_is_appended(self, manager):
        messages = manager.render("recipes/strict@v1", {"sentinel": "S", "extra_system": "Answer in French."})
        system = messages[0]["content"]

        assert system.index("when nothing is safe.") < system.index("Answer in French.")

    def test_missing_variable_raises(self, manager):
        with pytest.raises(ValueError, match="Missing required variable"):
            manager.render("plain/test@v1", {})


class TestPackagedPrompts:
    """The prompts shipped inside the package load and carry their placeholders."""

    @pytest.mark.parametrize("ref", ["recipes/strict@v1", "recipes/flexible@v1"])
    def test_packaged_prompt_loads(self, ref):
        config = PromptManager().load_prompt(ref)

        assert "{USER_PROMPT_PLACEHOLDER}" in config.user_template
        assert "{ALLERGIES_PLACEHOLDER}" in config.user_template
        assert "hard ban" in config.system_template
