"""
Configuration module for the chord transposer.

Holds enharmonic defaults, output notation, cache sizing and batch
settings, persisted as JSON in the user's config directory.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "CHORD_TRANSPOSER_CONFIG_DIR"


def get_default_config_dir() -> Path:
    """Config directory, overridable through CHORD_TRANSPOSER_CONFIG_DIR."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    return Path.home() / ".chord_transposer"


@dataclass
class ResolverConfig:
    """Configuration for enharmonic spelling."""
    default_preference: str = "auto"  # "sharp", "flat", "auto"
    tritone_default: str = "sharp"  # tie side for the tritone in C major / A minor


@dataclass
class OutputConfig:
    """Configuration for rendered chords."""
    notation_style: str = "source"  # "source", "standard", "jazz"
    unicode_accidentals: bool = False


@dataclass
class CacheConfig:
    """Configuration for the transposition cache."""
    enabled: bool = True
    max_entries: int = 512
    ttl_seconds: Optional[float] = None


@dataclass
class BatchConfig:
    """Configuration for batch transposition."""
    max_workers: int = 1
    output_suffix: str = ".cho"


@dataclass
class Config:
    """
    Main configuration class for the chord transposer.

    Handles loading/saving settings and converting them to engine values.
    """

    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)

    _config_dir: Path = field(default_factory=get_default_config_dir)
    _config_file: Path = field(default=None)

    def __post_init__(self):
        """Initialize configuration paths."""
        self._config_dir = Path(self._config_dir)
        self._config_file = self._config_dir / "config.json"

    @property
    def config_file(self) -> Path:
        return self._config_file

    def save(self) -> None:
        """Save configuration to disk."""
        self._config_dir.mkdir(parents=True, exist_ok=True)

        data = {
            "resolver": asdict(self.resolver),
            "output": asdict(self.output),
            "cache": asdict(self.cache),
            "batch": asdict(self.batch),
        }

        with open(self._config_file, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def load(cls, config_dir: Optional[Path] = None) -> "Config":
        """Load configuration from disk or create default."""
        config = cls(_config_dir=config_dir) if config_dir else cls()

        if config._config_file.exists():
            try:
                with open(config._config_file, "r") as f:
                    data = json.load(f)

                if "resolver" in data:
                    config.resolver = ResolverConfig(**data["resolver"])
                if "output" in data:
                    config.output = OutputConfig(**data["output"])
                if "cache" in data:
                    config.cache = CacheConfig(**data["cache"])
                if "batch" in data:
                    config.batch = BatchConfig(**data["batch"])

            except (json.JSONDecodeError, TypeError, KeyError) as e:
                logger.warning(f"Could not load config file: {e}")

        return config

    def enharmonic_preference(self):
        """Default EnharmonicPreference built from the resolver settings."""
        from chord_transposer.core.resolver import EnharmonicPreference

        return EnharmonicPreference.create(self.resolver.default_preference)

    def tie_default(self):
        """Accidental used for an undecided tritone."""
        from chord_transposer.core.fifths import Accidental

        side = Accidental.from_string(self.resolver.tritone_default)
        if side is Accidental.NATURAL:
            raise ValueError("tritone_default must be 'sharp' or 'flat'")
        return side

    def notation_style(self):
        """Configured NotationStyle."""
        from chord_transposer.core.quality import NotationStyle

        return NotationStyle.from_string(self.output.notation_style)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def reset_config() -> None:
    """Reset the global configuration to defaults."""
    global _config
    _config = Config()
