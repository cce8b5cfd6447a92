from pathlib import Path

import config as config_module
from config import Config, _config_from_dict, load_config


def test_defaults_for_empty_file():
    config = _config_from_dict({})
    defaults = Config.default()

    assert config.db_path == defaults.db_path
    assert config.auto_confirm_threshold == 0.85
    assert config.review_floor == 0.3
    assert config.smoothing_constant == 1.0
    assert config.default_category_slug == "uncategorized"
    assert config.decay_policy == "exponential"
    assert config.llm_enabled is False


def test_sections_override_defaults(tmp_path):
    config = _config_from_dict(
        {
            "base_dir": str(tmp_path),
            "database": {"filename": "other.db"},
            "classification": {"smoothing_constant": 0.5, "fold_accents": False},
            "learning": {"decay_policy": "linear", "decay_after_days": 30},
            "llm": {"enabled": True, "openai_api_key": "sk-test"},
        }
    )

    assert config.db_path == tmp_path / "db" / "other.db"
    assert config.log_dir == tmp_path / "logs"
    assert config.smoothing_constant == 0.5
    assert config.fold_accents is False
    assert config.decay_policy == "linear"
    assert config.decay_after_days == 30
    assert config.llm_enabled is True
    assert config.llm_openai_api_key == "sk-test"


def test_load_config_writes_defaults_then_reads_them(tmp_path, monkeypatch):
    config_path = tmp_path / ".config" / "centavo.toml"
    monkeypatch.setattr(config_module, "get_config_path", lambda: config_path)

    first = load_config()
    assert config_path.exists()

    second = load_config()
    assert second == first
    assert isinstance(second.base_dir, Path)
