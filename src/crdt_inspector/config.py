"""Configuration management for CRDT Inspector."""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".crdt-inspector"
CONFIG_FILE_NAME = "config.json"


class DisplayConfig(BaseModel):
    """Configuration for terminal output."""

    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="strftime format used for commit dates",
    )
    max_commits: int = Field(
        default=0,
        description="Maximum commits listed by the CLI (0 = unlimited)",
    )

    @field_validator("max_commits")
    @classmethod
    def validate_max_commits(cls, v: int) -> int:
        """Reject negative limits."""
        if v < 0:
            raise ValueError("max_commits must be zero or positive")
        return v


class InspectorConfig(BaseModel):
    """Main configuration for CRDT Inspector."""

    db_path: Optional[str] = Field(
        default=None,
        description="Path or connection string of the CRDT SQLite database",
    )
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    change_types: List[str] = Field(
        default_factory=list,
        description="Registered change type discriminators, e.g. 'DeleteChange<Entry>'",
    )
    object_types: List[str] = Field(
        default_factory=list,
        description="Registered CRDT object type names",
    )
    strict_change_types: bool = Field(
        default=False,
        description="Fail on changes whose type is not registered",
    )

    @field_validator("db_path", mode="before")
    @classmethod
    def validate_db_path(cls, v: Any) -> Optional[str]:
        """Convert paths to strings and reject blank locations."""
        if v is None:
            return None
        if isinstance(v, Path):
            v = str(v)
        if not isinstance(v, str):
            raise ValueError(f"Expected str or Path, got {type(v)}")
        if not v.strip():
            raise ValueError("db_path cannot be blank")
        return v

    @field_validator("change_types", "object_types")
    @classmethod
    def strip_type_names(cls, v: List[str]) -> List[str]:
        """Drop blank entries and surrounding whitespace."""
        return [name.strip() for name in v if name and name.strip()]


class ConfigManager:
    """Manages configuration loading, saving, and validation."""

    DEFAULT_CONFIG_PATH = Path(CONFIG_DIR_NAME) / CONFIG_FILE_NAME

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Optional[InspectorConfig] = None

    def load(self) -> InspectorConfig:
        """Load configuration from file or create a default one."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                self._config = InspectorConfig(**data)
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
        else:
            self._config = InspectorConfig()

        return self._config

    def save(self, config: Optional[InspectorConfig] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            json.dump(config.model_dump(), f, indent=2)
        self._config = config

    def get_config(self) -> InspectorConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load()
        if self._config is None:
            raise RuntimeError("Failed to load configuration")
        return self._config

    def update_config(self, **kwargs: Any) -> InspectorConfig:
        """Update configuration with new values and save it."""
        config_dict = self.get_config().model_dump()
        config_dict.update(kwargs)

        new_config = InspectorConfig(**config_dict)
        self._config = new_config
        self.save()
        return new_config

    @staticmethod
    def find_config_path(start_dir: Optional[Path] = None) -> Optional[Path]:
        """Find .crdt-inspector/config.json by walking up the directory tree.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            Path to config.json if found, None otherwise
        """
        current = start_dir or Path.cwd()
        for path in [current] + list(current.parents):
            config_path = path / CONFIG_DIR_NAME / CONFIG_FILE_NAME
            if config_path.exists():
                return config_path
        return None

    @classmethod
    def create_with_backtrack(cls, start_dir: Optional[Path] = None) -> "ConfigManager":
        """Create ConfigManager by finding config through directory backtracking.

        Falls back to .crdt-inspector/config.json under the start directory
        when no config exists yet.
        """
        config_path = cls.find_config_path(start_dir)
        if config_path is None:
            start = start_dir or Path.cwd()
            config_path = start / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        return cls(config_path)
