"""Configuration management for fuzzy-picker.

Single-file configuration stored at ~/.config/fuzzy-picker/config.json.
Per-session options (PickerOptions) are derived from it at open time and
may be overridden by the caller.

Loading never fails: a malformed or invalid file falls back to defaults
with a logged warning.
"""

import json
import logging
import os
import stat
from dataclasses import dataclass, fields
from pathlib import Path

from ..models.exceptions import ConfigError, ConfigValidationError

logger = logging.getLogger(__name__)


def _secure_write_json(path: Path, data: dict) -> None:
    """Write JSON to file with restricted permissions (0600)."""
    content = json.dumps(data, indent=2)
    # Write to temp file first, then rename for atomicity
    temp_path = path.with_suffix(".tmp")
    try:
        fd = os.open(str(temp_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            os.write(fd, content.encode())
        finally:
            os.close(fd)
        temp_path.rename(path)
    except OSError:
        # Fallback: write normally then chmod
        path.write_text(content)
        try:
            path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0600
        except OSError:
            pass  # Best effort on systems that don't support chmod


def _require_int(data: dict, key: str, default: int, minimum: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigValidationError(
            f"{key} must be an integer, got {type(value).__name__}",
        )
    if value < minimum:
        raise ConfigValidationError(f"{key} must be >= {minimum}, got {value}")
    return value


def _require_float(data: dict, key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigValidationError(
            f"{key} must be a number, got {type(value).__name__}",
        )
    if value < 0:
        raise ConfigValidationError(f"{key} must be >= 0, got {value}")
    return float(value)


def _require_bool(data: dict, key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigValidationError(
            f"{key} must be a boolean, got {type(value).__name__}",
        )
    return value


@dataclass
class PickerConfig:
    """Persistent picker settings."""

    max_results: int = 50
    debounce_ms: int = 150  # Delay before a new external fetch fires
    flush_interval_ms: int = 50  # Coalescing window for streamed lines
    file_match_limit: int = 600  # Cap on files listed by the external tool
    file_cache_ttl: float = 30.0  # Seconds a file listing stays fresh
    open_single_result: bool = False  # Pick directly when only one file matches
    grep_fixed_strings: bool = True  # Literal grep patterns (keeps refinement sound)
    grep_dedupe_lines: bool = True  # One row per file:line, first match wins

    def to_dict(self) -> dict:
        defaults = PickerConfig()
        result: dict = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value != getattr(defaults, f.name):
                result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "PickerConfig":
        """Build a validated config.

        Raises:
            ConfigValidationError: if a value has the wrong type or range
        """
        if not isinstance(data, dict):
            raise ConfigValidationError("config root must be an object")
        defaults = cls()
        return cls(
            max_results=_require_int(data, "max_results", defaults.max_results, 1),
            debounce_ms=_require_int(data, "debounce_ms", defaults.debounce_ms, 0),
            flush_interval_ms=_require_int(
                data, "flush_interval_ms", defaults.flush_interval_ms, 0
            ),
            file_match_limit=_require_int(
                data, "file_match_limit", defaults.file_match_limit, 1
            ),
            file_cache_ttl=_require_float(data, "file_cache_ttl", defaults.file_cache_ttl),
            open_single_result=_require_bool(
                data, "open_single_result", defaults.open_single_result
            ),
            grep_fixed_strings=_require_bool(
                data, "grep_fixed_strings", defaults.grep_fixed_strings
            ),
            grep_dedupe_lines=_require_bool(
                data, "grep_dedupe_lines", defaults.grep_dedupe_lines
            ),
        )


@dataclass(frozen=True)
class PickerOptions:
    """Options for a single search session."""

    max_results: int = 50  # Cap on ranked list length
    debounce_interval_ms: int = 150  # Delay before a new external fetch fires
    title: str = "fuzzy"  # Cosmetic
    flush_interval_ms: int = 50  # Coalescing window for streamed batches
    filter_locally: bool = True  # Re-rank dynamic results with the local scorer

    @classmethod
    def from_config(
        cls,
        config: PickerConfig,
        title: str = "fuzzy",
        filter_locally: bool = True,
    ) -> "PickerOptions":
        return cls(
            max_results=config.max_results,
            debounce_interval_ms=config.debounce_ms,
            title=title,
            flush_interval_ms=config.flush_interval_ms,
            filter_locally=filter_locally,
        )


class ConfigManager:
    """Loads and saves the picker configuration file."""

    def __init__(self, config_dir: Path | None = None):
        if config_dir is None:
            config_dir = Path.home() / ".config" / "fuzzy-picker"
        self._config_dir = config_dir
        self._config_file = config_dir / "config.json"
        self._config: PickerConfig | None = None

    @property
    def config_file(self) -> Path:
        return self._config_file

    @property
    def config(self) -> PickerConfig:
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def _load_config(self) -> PickerConfig:
        """Load config from disk."""
        if self._config_file.exists():
            try:
                data = json.loads(self._config_file.read_text())
                return PickerConfig.from_dict(data)
            except (json.JSONDecodeError, ConfigError) as e:
                logger.warning(f"Invalid config at {self._config_file}, using defaults: {e}")
        return PickerConfig()

    def save_config(self, config: PickerConfig) -> None:
        """Save config to disk with secure permissions."""
        self._config_dir.mkdir(parents=True, exist_ok=True)
        _secure_write_json(self._config_file, config.to_dict())
        self._config = config

    def update(self, **changes) -> PickerConfig:
        """Validate and persist a partial update.

        Raises:
            ConfigValidationError: if a key is unknown or a value invalid
        """
        known = {f.name for f in fields(PickerConfig)}
        unknown = set(changes) - known
        if unknown:
            raise ConfigValidationError(
                f"unknown config keys: {', '.join(sorted(unknown))}",
            )
        data = {f.name: getattr(self.config, f.name) for f in fields(PickerConfig)}
        data.update(changes)
        config = PickerConfig.from_dict(data)
        self.save_config(config)
        return config

    def options(self, title: str = "fuzzy", filter_locally: bool = True) -> PickerOptions:
        """Session options derived from the current config."""
        return PickerOptions.from_config(self.config, title=title, filter_locally=filter_locally)
