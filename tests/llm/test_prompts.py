import pytest

from llm.prompts.loader import PromptManager


def test_bundled_extract_prompt_renders():
    rendered = PromptManager().render_prompt(
        "extract_expense", {"text": "tacos 50", "today": "2024-03-10"}
    )

    assert rendered["system_prompt"]
    assert "tacos 50" in rendered["user_prompt"]
    assert "2024-03-10" in rendered["user_prompt"]
    assert rendered["parameters"]["model"] == "gpt-4o-mini"
    assert rendered["version"] == "1.0"


def test_missing_prompt_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        PromptManager(tmp_path).load_prompt("nope")


def test_prompt_missing_required_key(tmp_path):
    (tmp_path / "broken.yaml").write_text("system_prompt: hi\n", encoding="utf-8")

    with pytest.raises(ValueError):
        PromptManager(tmp_path).load_prompt("broken")


def test_prompts_are_cached(tmp_path):
    prompt_file = tmp_path / "p.yaml"
    prompt_file.write_text(
        "system_prompt: a\nuser_prompt_template: '{text}'\n", encoding="utf-8"
    )
    manager = PromptManager(tmp_path)
    first = manager.load_prompt("p")
    prompt_file.unlink()

    assert manager.load_prompt("p") is first
