"""
Configuration module for todoscan.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.

The scan section is an immutable snapshot (ScanConfig) handed to the
scan engine at call time; nothing in the scanning path reads ambient
settings.
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from todoscan.core.findings import Severity
from todoscan.core.matcher import KeywordPattern

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section, {})
    return section_defaults.get(key, fallback)


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def _parse_keywords(value: str) -> tuple[str, ...]:
    """Parse a comma-separated keyword list."""
    return tuple(k.strip() for k in value.split(",") if k.strip())


def _normalize_keyword(entry: Any) -> str | KeywordPattern:
    """Accept a plain keyword or a {text, case_sensitive} mapping."""
    if isinstance(entry, (str, KeywordPattern)):
        return entry
    if isinstance(entry, dict):
        if "case_sensitive" in entry:
            return KeywordPattern(
                text=str(entry.get("text", "")),
                case_sensitive=bool(entry["case_sensitive"]),
            )
        return str(entry.get("text", ""))
    raise ValueError(f"Unsupported keyword entry: {entry!r}")


@dataclass(frozen=True)
class ScanConfig:
    """
    Immutable configuration snapshot for scanning.

    Attributes:
        keywords: Keywords in precedence order; plain strings follow
            case_sensitive, KeywordPattern entries carry their own flag
        case_sensitive: Global case sensitivity for plain keywords
        glob_pattern: Glob selecting the monitored files
        max_preview_length: Maximum preview length in characters
        severity: Severity attached to every finding
        max_workers: Parallel workers for full rescans
        max_file_size: Files larger than this many bytes are skipped
        keep_stale_on_read_error: Keep a file's previous findings when it
            cannot be read, instead of dropping them
    """

    keywords: tuple[str | KeywordPattern, ...] = field(
        default_factory=lambda: tuple(_get_default("scan", "keywords", ["FIXME", "TODO"]))
    )
    case_sensitive: bool = field(
        default_factory=lambda: _get_default("scan", "case_sensitive", False)
    )
    glob_pattern: str = field(
        default_factory=lambda: _get_default("scan", "glob_pattern", "**/*.rs")
    )
    max_preview_length: int = field(
        default_factory=lambda: _get_default("scan", "max_preview_length", 120)
    )
    severity: Severity = field(
        default_factory=lambda: Severity.parse(_get_default("scan", "severity", "information"))
    )
    max_workers: int = field(default_factory=lambda: _get_default("scan", "max_workers", 4))
    max_file_size: int = field(
        default_factory=lambda: _get_default("scan", "max_file_size", 10 * 1024 * 1024)
    )
    keep_stale_on_read_error: bool = field(
        default_factory=lambda: _get_default("scan", "keep_stale_on_read_error", False)
    )

    def __post_init__(self) -> None:
        """Normalize field types and validate values."""
        object.__setattr__(
            self, "keywords", tuple(_normalize_keyword(k) for k in self.keywords)
        )
        object.__setattr__(self, "severity", Severity.parse(self.severity))

        if not self.keywords:
            raise ValueError("At least one keyword must be configured")
        if self.max_preview_length < 0:
            raise ValueError(
                f"max_preview_length must be non-negative, got {self.max_preview_length}"
            )
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.max_file_size < 0:
            raise ValueError(f"max_file_size must be non-negative, got {self.max_file_size}")
        if not self.glob_pattern:
            raise ValueError("glob_pattern must not be empty")

    def patterns(self) -> tuple[KeywordPattern, ...]:
        """Resolve configured keywords into patterns, in order."""
        return tuple(
            k if isinstance(k, KeywordPattern) else KeywordPattern(k, self.case_sensitive)
            for k in self.keywords
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary suitable for YAML/JSON."""
        keywords: list[Any] = []
        for k in self.keywords:
            if isinstance(k, KeywordPattern):
                keywords.append({"text": k.text, "case_sensitive": k.case_sensitive})
            else:
                keywords.append(k)
        return {
            "keywords": keywords,
            "case_sensitive": self.case_sensitive,
            "glob_pattern": self.glob_pattern,
            "max_preview_length": self.max_preview_length,
            "severity": self.severity.name.lower(),
            "max_workers": self.max_workers,
            "max_file_size": self.max_file_size,
            "keep_stale_on_read_error": self.keep_stale_on_read_error,
        }


def _get_default_debounce_ms() -> int:
    """Get default debounce delay from environment or use default."""
    env_value = os.environ.get("TODOSCAN_WATCH_DEBOUNCE_MS")
    if env_value is not None:
        try:
            return int(env_value)
        except ValueError:
            pass
    return _get_default("watch", "debounce_ms", 2000)


@dataclass
class WatchConfig:
    """
    Configuration for the file watching service.

    Attributes:
        watch_path: Directory path to watch for file changes
        debounce_ms: Debounce delay in milliseconds (default: 2000ms or TODOSCAN_WATCH_DEBOUNCE_MS)
        ignore_patterns: Patterns whose events are dropped before reaching the index
        verbose: Enable verbose logging output
    """

    watch_path: Path = field(default_factory=Path.cwd)
    debounce_ms: int = field(default_factory=_get_default_debounce_ms)
    ignore_patterns: list[str] = field(
        default_factory=lambda: list(
            _get_default("watch", "ignore_patterns", [".git", "node_modules", "target"])
        )
    )
    verbose: bool = False

    def __post_init__(self) -> None:
        """Ensure watch_path is a Path object."""
        if isinstance(self.watch_path, str):
            self.watch_path = Path(self.watch_path)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize configuration to a dictionary.

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        return {
            "watch_path": str(self.watch_path),
            "debounce_ms": self.debounce_ms,
            "ignore_patterns": list(self.ignore_patterns),
            "verbose": self.verbose,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WatchConfig":
        """
        Create WatchConfig from a dictionary.

        Args:
            data: Dictionary with configuration values

        Returns:
            WatchConfig instance
        """
        return cls(
            watch_path=Path(data.get("watch_path", ".")),
            debounce_ms=data.get("debounce_ms", _get_default_debounce_ms()),
            ignore_patterns=list(data.get("ignore_patterns", [])),
            verbose=data.get("verbose", False),
        )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "INFO"))
    format: str = field(
        default_factory=lambda: _get_default(
            "logging", "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )


@dataclass
class TodoscanConfig:
    """Main configuration class for todoscan."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "TodoscanConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            TodoscanConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file format is unsupported or values are invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "TodoscanConfig":
        """Create TodoscanConfig from a dictionary."""
        config = cls()

        if "scan" in data:
            config.scan = ScanConfig(**data["scan"])
        if "watch" in data:
            config.watch = WatchConfig.from_dict(data["watch"])
        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        return config

    def apply_env_overrides(self) -> "TodoscanConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: TODOSCAN_<SECTION>_<KEY>
        Examples:
            - TODOSCAN_SCAN_KEYWORDS (comma-separated)
            - TODOSCAN_SCAN_GLOB_PATTERN
            - TODOSCAN_SCAN_CASE_SENSITIVE
            - TODOSCAN_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Scan config
            "TODOSCAN_SCAN_KEYWORDS": ("scan", "keywords", _parse_keywords),
            "TODOSCAN_SCAN_CASE_SENSITIVE": ("scan", "case_sensitive", _parse_bool),
            "TODOSCAN_SCAN_GLOB_PATTERN": ("scan", "glob_pattern", str),
            "TODOSCAN_SCAN_MAX_PREVIEW_LENGTH": ("scan", "max_preview_length", int),
            "TODOSCAN_SCAN_SEVERITY": ("scan", "severity", Severity.parse),
            "TODOSCAN_SCAN_MAX_WORKERS": ("scan", "max_workers", int),
            "TODOSCAN_SCAN_MAX_FILE_SIZE": ("scan", "max_file_size", int),
            "TODOSCAN_SCAN_KEEP_STALE_ON_READ_ERROR": (
                "scan",
                "keep_stale_on_read_error",
                _parse_bool,
            ),
            # Watch config
            "TODOSCAN_WATCH_DEBOUNCE_MS": ("watch", "debounce_ms", int),
            # Logging config
            "TODOSCAN_LOGGING_LEVEL": ("logging", "level", str),
        }

        scan_overrides: dict[str, Any] = {}
        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            if section == "scan":
                scan_overrides[key] = converter(value)
            else:
                section_obj = getattr(self, section)
                setattr(section_obj, key, converter(value))

        if scan_overrides:
            self.scan = replace(self.scan, **scan_overrides)

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return {
            "scan": self.scan.to_dict(),
            "watch": {
                "debounce_ms": self.watch.debounce_ms,
                "ignore_patterns": list(self.watch.ignore_patterns),
                "verbose": self.watch.verbose,
            },
            "logging": {"level": self.logging.level, "format": self.logging.format},
        }

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Args:
            path: Path to save the configuration (.yaml, .yml, or .json)

        Raises:
            ValueError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def load_config(
    config_path: Optional[Path | str] = None, apply_env: bool = True
) -> TodoscanConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        TodoscanConfig instance
    """
    if config_path:
        config = TodoscanConfig.from_file(config_path)
    else:
        config = TodoscanConfig()

    if apply_env:
        config.apply_env_overrides()

    return config
