# mdrich/core/config.py
"""
Configuration loading and the durable configuration store.

The configuration is a human-editable YAML file:

    directories:
      input_dir: ./todo
      output_dir: ./done
    exclusions:
      excluded_files: README.md, CHANGELOG.md
    model:
      name: gpt-4o-mini
      api_url: https://api.openai.com/v1/chat/completions
      api_key_env: OPENAI_API_KEY
      temperature: 0.7
      max_tokens: 32000
    prompt:
      text: |
        Expand the following note...
    processing:
      requests_per_minute: 10
    logging:
      level: INFO
      file: mdrich.log

The same file doubles as the exclusion ledger's store: ConfigStore rewrites
`exclusions.excluded_files` in place, keeping the rest of the document and
the list's on-disk form (comma-separated string or YAML list).

Usage:
    from mdrich.core.config import ConfigStore, load_config

    store = ConfigStore("mdrich.yaml")
    config = load_config(store)
"""

from __future__ import annotations

import stat
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from mdrich.core.io import DEFAULT_FILE_MODE, atomic_write
from mdrich.core.paths import absolute_root, ensure_safe_path, normalize_relative
from mdrich.core.rate_limit import DEFAULT_REQUESTS_PER_MINUTE
from mdrich.core.validation import MAX_FILE_SIZE
from mdrich.logging.logger import get_logger
from mdrich.logging.tags import CONFIG

logger = get_logger(__name__)

PathLike = Union[str, Path]

DEFAULT_CONFIG_PATH = "mdrich.yaml"
EXCLUSIONS_SECTION = "exclusions"
EXCLUSIONS_KEY = "excluded_files"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# =============================================================================
# Errors
# =============================================================================


class ConfigError(Exception):
    """Base error for configuration issues."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path:
            message = f"{message} (file: {path})"
        super().__init__(message)


class ConfigNotFoundError(ConfigError):
    """Raised when a config file doesn't exist."""

    pass


class ConfigParseError(ConfigError):
    """Raised when YAML parsing fails."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when config doesn't match schema."""

    pass


# =============================================================================
# Schema
# =============================================================================


def parse_excluded(value: Union[str, List[Any], None]) -> List[str]:
    """
    Split the excluded-files value into normalized relative paths.

    Accepts a comma-separated string or a YAML list. Entries are trimmed,
    blanks dropped, duplicates removed (first occurrence wins).
    """
    if value is None:
        return []
    if isinstance(value, str):
        items: List[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise TypeError(f"excluded_files must be a string or a list, got {type(value).__name__}")

    result: List[str] = []
    seen = set()
    for item in items:
        if item is None:
            continue
        normalized = normalize_relative(str(item))
        if normalized and normalized not in seen:
            seen.add(normalized)
            result.append(normalized)
    return result


class DirectoriesConfig(BaseModel):
    """Input and output roots. Relative paths resolve against the CWD."""

    model_config = ConfigDict(extra="forbid")

    input_dir: str = "./todo"
    output_dir: str = "./done"


class ExclusionsConfig(BaseModel):
    """Relative paths that are never sent to the provider."""

    model_config = ConfigDict(extra="forbid")

    excluded_files: Union[str, List[str], None] = ""

    @property
    def paths(self) -> List[str]:
        return parse_excluded(self.excluded_files)


class ModelConfig(BaseModel):
    """Generative-text provider settings."""

    model_config = ConfigDict(extra="forbid")

    name: str = "gpt-3.5-turbo"
    api_url: str = "https://api.openai.com/v1/chat/completions"
    api_key: Optional[str] = None
    api_key_env: Optional[str] = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, gt=0)

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_url must start with http:// or https://")
        return v


class PromptConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str = ""


class ProcessingConfig(BaseModel):
    """Throughput and safety limits for a run."""

    model_config = ConfigDict(extra="forbid")

    requests_per_minute: int = Field(default=DEFAULT_REQUESTS_PER_MINUTE, gt=0)
    max_file_size: int = Field(default=MAX_FILE_SIZE, gt=0)
    extension: str = ".md"
    max_workers: int = Field(default=1, ge=1)
    request_timeout: float = Field(default=60.0, gt=0)

    @field_validator("extension")
    @classmethod
    def normalize_extension(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("extension must not be empty")
        return v if v.startswith(".") else f".{v}"


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = "INFO"
    file: Optional[str] = "mdrich.log"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}")
        return v


class EnricherConfig(BaseModel):
    """Validated configuration for one enrichment run."""

    model_config = ConfigDict(extra="forbid")

    directories: DirectoriesConfig = Field(default_factory=DirectoriesConfig)
    exclusions: ExclusionsConfig = Field(default_factory=ExclusionsConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="before")
    @classmethod
    def lowercase_sections(cls, data: Any) -> Any:
        # Section names are case-insensitive ("DIRECTORIES" == "directories")
        if isinstance(data, dict):
            return {str(k).lower(): v for k, v in data.items()}
        return data

    @property
    def input_root(self) -> Path:
        return absolute_root(self.directories.input_dir)

    @property
    def output_root(self) -> Path:
        return absolute_root(self.directories.output_dir)

    @property
    def excluded_paths(self) -> FrozenSet[str]:
        return frozenset(self.exclusions.paths)


# =============================================================================
# Core Loading Functions
# =============================================================================


def load_yaml(path: PathLike) -> Dict[str, Any]:
    """
    Load a YAML file and return as dictionary.

    Raises:
        ConfigNotFoundError: If file doesn't exist
        ConfigParseError: If YAML is invalid
    """
    p = Path(path)

    if not p.exists():
        raise ConfigNotFoundError("Config file not found", path=p)

    if p.is_dir():
        raise ConfigError("Config path is a directory, not a file", path=p)

    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Invalid YAML syntax: {e}", path=p) from e
    except OSError as e:
        raise ConfigParseError(f"Failed to read config: {e}", path=p) from e

    if not isinstance(data, dict):
        raise ConfigParseError("Config root must be a mapping (dict)", path=p)

    return data


def _find_section(data: Dict[str, Any], name: str) -> Optional[str]:
    for key in data:
        if str(key).lower() == name:
            return key
    return None


class ConfigStore:
    """
    Handle on the on-disk configuration document.

    Holds only the path: every read goes to disk, so nothing cached here can
    drift from the file. Writes go through atomic_write(). The path is made
    absolute once, with parent references collapsed like the configured roots.
    """

    def __init__(self, path: PathLike = DEFAULT_CONFIG_PATH) -> None:
        self.path = absolute_root(path)

    def read(self) -> Dict[str, Any]:
        return load_yaml(self.path)

    def load(self) -> EnricherConfig:
        """
        Read and validate the configuration.

        Raises:
            ConfigNotFoundError, ConfigParseError, ConfigValidationError
        """
        data = self.read()
        try:
            config = EnricherConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration: {e}", path=self.path) from e

        logger.debug(f"{CONFIG} Loaded config from {self.path}")
        return config

    def read_exclusions(self) -> List[str]:
        """Current excluded paths, read fresh from disk."""
        data = self.read()
        section_key = _find_section(data, EXCLUSIONS_SECTION)
        section = data.get(section_key) if section_key is not None else None
        if not isinstance(section, dict):
            return []
        try:
            return parse_excluded(section.get(EXCLUSIONS_KEY))
        except TypeError as e:
            raise ConfigParseError(str(e), path=self.path) from e

    def write_exclusions(self, paths: List[str]) -> None:
        """
        Replace the excluded-files value and rewrite the store atomically.

        A comma-separated string stays a string; a YAML list stays a list.
        """
        data = self.read()

        section_key = _find_section(data, EXCLUSIONS_SECTION)
        if section_key is None:
            section_key = EXCLUSIONS_SECTION
            data[section_key] = {}
        section = data[section_key]
        if not isinstance(section, dict):
            raise ConfigParseError(f"'{section_key}' must be a mapping", path=self.path)

        if isinstance(section.get(EXCLUSIONS_KEY), list):
            section[EXCLUSIONS_KEY] = list(paths)
        else:
            section[EXCLUSIONS_KEY] = ", ".join(paths)

        rendered = yaml.safe_dump(
            data,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
        atomic_write(self.path, rendered.encode("utf-8"), permissions=self._file_mode())

    def _file_mode(self) -> int:
        try:
            return stat.S_IMODE(self.path.stat().st_mode)
        except OSError:
            return DEFAULT_FILE_MODE

    def __repr__(self) -> str:
        return f"ConfigStore({str(self.path)!r})"


def load_config(store: Union[ConfigStore, PathLike]) -> EnricherConfig:
    """
    Load the configuration and prepare the output root.

    The output root must pass the path check and is created if missing.

    Raises:
        ConfigError: If the file can't be loaded or the output root can't be created
        UnsafePathError: If the output root fails the path check
    """
    if not isinstance(store, ConfigStore):
        store = ConfigStore(store)

    config = store.load()

    output_root = ensure_safe_path(config.output_root)
    try:
        output_root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Failed to create output directory {output_root}: {e}", path=store.path) from e

    logger.info(
        f"{CONFIG} input={config.input_root} output={output_root} "
        f"model={config.model.name} excluded={len(config.excluded_paths)}"
    )
    return config


__all__ = [
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
    "ConfigStore",
    "DEFAULT_CONFIG_PATH",
    "DirectoriesConfig",
    "EnricherConfig",
    "ExclusionsConfig",
    "LoggingConfig",
    "ModelConfig",
    "ProcessingConfig",
    "PromptConfig",
    "load_config",
    "load_yaml",
    "parse_excluded",
]
