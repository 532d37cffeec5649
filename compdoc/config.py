"""Configuration loading for compdoc (.compdoc.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".compdoc.yml"
DEFAULT_CACHE_DIR = ".compdoc/cache"
DEFAULT_SOURCE_DIR = "src"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LLMConfig:
    """Oracle runtime settings from .compdoc.yml."""

    runner: Optional[str] = None
    executable: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    request_timeout: Optional[float] = None


@dataclass
class GenerationConfig:
    """Batching and patching behaviour."""

    rate_limit: int = 10
    batch_size: Optional[int] = None
    skip_existing: bool = False
    update_existing: bool = False


@dataclass
class CompDocConfig:
    """Represents the settings defined in .compdoc.yml."""

    root: Path
    llm: Optional[LLMConfig] = None
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    source_dir: Optional[str] = DEFAULT_SOURCE_DIR
    cache_dir: str = DEFAULT_CACHE_DIR
    exclude_paths: List[str] = field(default_factory=list)

    @property
    def cache_path(self) -> Path:
        path = Path(self.cache_dir).expanduser()
        return path if path.is_absolute() else self.root / path


def load_config(config_path: Path) -> CompDocConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CompDocConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    llm_data = _as_dict(data.get("llm"))
    llm = None
    if llm_data:
        llm = LLMConfig(
            runner=_as_str(llm_data.get("runner")),
            executable=_as_str(llm_data.get("executable")),
            model=_as_str(llm_data.get("model")),
            temperature=_as_float(llm_data.get("temperature")),
            max_tokens=_as_int(llm_data.get("max_tokens")),
            base_url=_as_str(llm_data.get("base_url")),
            api_key=_as_str(llm_data.get("api_key")),
            request_timeout=_as_float(llm_data.get("request_timeout")),
        )

    generation = GenerationConfig()
    generation_data = _as_dict(data.get("generation"))
    if generation_data:
        rate_limit = _as_int(generation_data.get("rate_limit"))
        if rate_limit is not None:
            if rate_limit <= 0:
                raise ConfigError("generation.rate_limit must be a positive integer")
            generation.rate_limit = rate_limit
        generation.batch_size = _as_int(generation_data.get("batch_size"))
        generation.skip_existing = bool(_as_bool(generation_data.get("skip_existing")))
        generation.update_existing = bool(_as_bool(generation_data.get("update_existing")))

    source_dir: Optional[str] = DEFAULT_SOURCE_DIR
    if "source_dir" in data:
        source_dir = _as_str(data.get("source_dir"))

    return CompDocConfig(
        root=root,
        llm=llm,
        generation=generation,
        source_dir=source_dir,
        cache_dir=_as_str(data.get("cache_dir")) or DEFAULT_CACHE_DIR,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "CompDocConfig",
    "ConfigError",
    "GenerationConfig",
    "LLMConfig",
    "load_config",
]
