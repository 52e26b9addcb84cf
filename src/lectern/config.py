# ABOUTME: Loads Lectern settings from a YAML file into typed dataclasses.
# ABOUTME: Missing files yield defaults; malformed files raise ConfigError.

import os
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = Path.home() / ".lectern" / "config.yaml"
CONFIG_ENV_VAR = "LECTERN_CONFIG"


class ConfigError(Exception):
    """Raised when the configuration file cannot be parsed or has bad values."""


@dataclass
class SearchSettings:
    timeout: float = 15.0
    title_threshold: float = 0.9
    author_threshold: float = 0.85


@dataclass
class AmazonSettings:
    enabled: bool = True
    timeout: float = 10.0
    marketplace: str = "www.amazon.com"
    limit: int = 10
    detail_concurrency: int = 4


@dataclass
class OpenLibrarySettings:
    enabled: bool = True
    timeout: float = 8.0
    limit: int = 10


@dataclass
class ReadarrProviderSettings:
    enabled: bool = True
    timeout: float = 12.0
    cache_ttl: float = 3600.0


@dataclass
class ProviderSettings:
    amazon: AmazonSettings = field(default_factory=AmazonSettings)
    openlibrary: OpenLibrarySettings = field(default_factory=OpenLibrarySettings)
    readarr: ReadarrProviderSettings = field(default_factory=ReadarrProviderSettings)


@dataclass
class ReadarrInstanceSettings:
    base_url: str = ""
    api_key: str = ""
    lookup_endpoint: str = "/api/v1/book/lookup"
    verify_ssl: bool = True


@dataclass
class ReadarrSettings:
    ebooks: ReadarrInstanceSettings = field(default_factory=ReadarrInstanceSettings)
    audiobooks: ReadarrInstanceSettings = field(default_factory=ReadarrInstanceSettings)


@dataclass
class MatchingSettings:
    title_threshold: float = 0.85
    author_threshold: float = 0.8


@dataclass
class HttpSettings:
    min_request_interval: float = 0.0
    max_retries: int = 0


@dataclass
class LecternConfig:
    """Top-level settings; every section falls back to its defaults."""

    search: SearchSettings = field(default_factory=SearchSettings)
    providers: ProviderSettings = field(default_factory=ProviderSettings)
    readarr: ReadarrSettings = field(default_factory=ReadarrSettings)
    matching: MatchingSettings = field(default_factory=MatchingSettings)
    http: HttpSettings = field(default_factory=HttpSettings)


def _coerce(value: Any, default: Any, key: str) -> Any:
    """Convert a YAML scalar to the type of its default, or raise ConfigError."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
    elif isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif isinstance(default, str):
        if value is None:
            return ""
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            return str(value)
    raise ConfigError(f"{key}: expected {type(default).__name__}, got {value!r}")


def _build(cls: type, data: Any, prefix: str) -> Any:
    """Recursively map a YAML mapping onto dataclass ``cls``."""
    instance = cls()
    if data is None:
        return instance
    if not isinstance(data, dict):
        raise ConfigError(f"{prefix or 'config'}: expected a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(cls)}
    unknown = sorted(str(k) for k in data if k not in known)
    if unknown:
        raise ConfigError(f"{prefix or 'config'}: unknown key(s) {', '.join(unknown)}")

    for name, value in data.items():
        key = f"{prefix}.{name}" if prefix else name
        default = getattr(instance, name)
        if is_dataclass(default):
            setattr(instance, name, _build(type(default), value, key))
        else:
            setattr(instance, name, _coerce(value, default, key))
    return instance


def _validate(config: LecternConfig) -> None:
    for key, value in (
        ("search.title_threshold", config.search.title_threshold),
        ("search.author_threshold", config.search.author_threshold),
        ("matching.title_threshold", config.matching.title_threshold),
        ("matching.author_threshold", config.matching.author_threshold),
    ):
        if not 0.0 <= value <= 1.0:
            raise ConfigError(f"{key}: must be between 0 and 1, got {value}")
    for key, value in (
        ("search.timeout", config.search.timeout),
        ("providers.amazon.timeout", config.providers.amazon.timeout),
        ("providers.openlibrary.timeout", config.providers.openlibrary.timeout),
        ("providers.readarr.timeout", config.providers.readarr.timeout),
    ):
        if value <= 0:
            raise ConfigError(f"{key}: must be positive, got {value}")
    if config.providers.amazon.detail_concurrency < 1:
        raise ConfigError("providers.amazon.detail_concurrency: must be at least 1")
    if config.http.max_retries < 0:
        raise ConfigError("http.max_retries: must not be negative")


def parse_config(text: str) -> LecternConfig:
    """Parse YAML text into a LecternConfig.

    Raises:
        ConfigError: If the YAML is invalid or a value has the wrong type.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML: {exc}") from exc
    config = _build(LecternConfig, data, "")
    _validate(config)
    return config


def resolve_config_path(path: Path | None = None) -> Path:
    """Explicit path, then $LECTERN_CONFIG, then the default location."""
    if path is not None:
        return path
    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        return Path(env).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(path: Path | None = None) -> LecternConfig:
    """Load configuration, returning defaults when the file does not exist."""
    config_path = resolve_config_path(path)
    if not config_path.exists():
        return LecternConfig()
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read {config_path}: {exc}") from exc
    try:
        return parse_config(text)
    except ConfigError as exc:
        raise ConfigError(f"{config_path}: {exc}") from exc
