"""Configuration management for Centavo.

Reads configuration from ~/.config/centavo.toml and creates default config if needed.
"""

from pathlib import Path
from dataclasses import dataclass
import tomllib
import tomli_w


@dataclass
class Config:
    """Application configuration."""

    base_dir: Path
    db_data_dir: Path
    db_filename: str
    log_level: str
    log_dir: Path

    # Classification
    auto_confirm_threshold: float = 0.85
    review_floor: float = 0.3
    smoothing_constant: float = 1.0
    default_category_slug: str = "uncategorized"
    fold_accents: bool = True
    max_write_retries: int = 3

    # Learning maintenance
    decay_policy: str = "exponential"  # 'exponential' or 'linear'
    decay_after_days: int = 90
    decay_factor: float = 0.9
    decay_step: float = 0.1
    decay_floor: float = 0.5

    # Extraction oracle
    llm_enabled: bool = False
    llm_provider: str = "openai"
    llm_openai_api_key: str = ""
    llm_openai_model: str = "gpt-4o-mini"

    enable_reset: bool = False

    @property
    def db_path(self) -> Path:
        """Get the full database path (data_dir/filename)."""
        return self.db_data_dir / self.db_filename

    @classmethod
    def default(cls) -> "Config":
        """Create a Config with default values."""
        home = Path.home()
        base_dir = home / "data" / "centavo"
        return cls(
            base_dir=base_dir,
            db_data_dir=base_dir / "db",
            db_filename="centavo.db",
            log_level="INFO",
            log_dir=base_dir / "logs",
        )


def get_config_path() -> Path:
    """Get the path to the config file."""
    return Path.home() / ".config" / "centavo.toml"


def get_migrations_dir() -> Path:
    """Get the path to the migrations directory.

    This is always relative to the code location, not configurable.
    """
    return Path(__file__).parent / "db" / "migrations"


def get_seed_dir() -> Path:
    """Get the path to the bundled seed data directory."""
    return Path(__file__).parent / "db" / "seed"


def load_config() -> Config:
    """Load configuration from file, creating default if it doesn't exist.

    Returns:
        Config object with loaded or default values.
    """
    config_path = get_config_path()

    # If config doesn't exist, create it with defaults
    if not config_path.exists():
        config = Config.default()
        _write_config(config)
        return config

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    return _config_from_dict(data)


def _config_from_dict(data: dict) -> Config:
    """Build a Config from parsed TOML, using defaults for missing values."""
    defaults = Config.default()

    base_dir = Path(data.get("base_dir", defaults.base_dir))

    db_config = data.get("database", {})
    db_data_dir = Path(db_config.get("data_dir", base_dir / "db"))
    db_filename = db_config.get("filename", defaults.db_filename)

    log_config = data.get("logging", {})
    log_level = log_config.get("level", defaults.log_level)
    log_dir = Path(log_config.get("log_dir", base_dir / "logs"))

    cls_config = data.get("classification", {})
    learning_config = data.get("learning", {})
    llm_config = data.get("llm", {})

    return Config(
        base_dir=base_dir,
        db_data_dir=db_data_dir,
        db_filename=db_filename,
        log_level=log_level,
        log_dir=log_dir,
        auto_confirm_threshold=float(
            cls_config.get("auto_confirm_threshold", defaults.auto_confirm_threshold)
        ),
        review_floor=float(cls_config.get("review_floor", defaults.review_floor)),
        smoothing_constant=float(
            cls_config.get("smoothing_constant", defaults.smoothing_constant)
        ),
        default_category_slug=cls_config.get(
            "default_category_slug", defaults.default_category_slug
        ),
        fold_accents=cls_config.get("fold_accents", defaults.fold_accents),
        max_write_retries=int(
            cls_config.get("max_write_retries", defaults.max_write_retries)
        ),
        decay_policy=learning_config.get("decay_policy", defaults.decay_policy),
        decay_after_days=int(
            learning_config.get("decay_after_days", defaults.decay_after_days)
        ),
        decay_factor=float(learning_config.get("decay_factor", defaults.decay_factor)),
        decay_step=float(learning_config.get("decay_step", defaults.decay_step)),
        decay_floor=float(learning_config.get("decay_floor", defaults.decay_floor)),
        llm_enabled=llm_config.get("enabled", defaults.llm_enabled),
        llm_provider=llm_config.get("provider", defaults.llm_provider),
        llm_openai_api_key=llm_config.get("openai_api_key", defaults.llm_openai_api_key),
        llm_openai_model=llm_config.get("openai_model", defaults.llm_openai_model),
        enable_reset=data.get("enable_reset", defaults.enable_reset),
    )


def _write_config(config: Config) -> None:
    """Write config to the config file.

    Args:
        config: Config object to write.
    """
    config_path = get_config_path()

    # Ensure config directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "base_dir": str(config.base_dir),
        "enable_reset": config.enable_reset,
        "database": {
            "data_dir": str(config.db_data_dir),
            "filename": config.db_filename,
        },
        "logging": {
            "level": config.log_level,
            "log_dir": str(config.log_dir),
        },
        "classification": {
            "auto_confirm_threshold": config.auto_confirm_threshold,
            "review_floor": config.review_floor,
            "smoothing_constant": config.smoothing_constant,
            "default_category_slug": config.default_category_slug,
            "fold_accents": config.fold_accents,
            "max_write_retries": config.max_write_retries,
        },
        "learning": {
            "decay_policy": config.decay_policy,
            "decay_after_days": config.decay_after_days,
            "decay_factor": config.decay_factor,
            "decay_step": config.decay_step,
            "decay_floor": config.decay_floor,
        },
        "llm": {
            "enabled": config.llm_enabled,
            "provider": config.llm_provider,
            "openai_api_key": config.llm_openai_api_key,
            "openai_model": config.llm_openai_model,
        },
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
