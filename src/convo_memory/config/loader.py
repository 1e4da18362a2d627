"""
Settings loading for the conversation memory manager.

Values are layered, later layers winning:
1. Model defaults from settings.py
2. An optional YAML file
3. CONVO_MEMORY__<SECTION>__<KEY> environment variables,
   e.g. CONVO_MEMORY__MEMORY__COMPRESSION_THRESHOLD=4000
"""

import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from convo_memory.config.settings import Settings

ENV_PREFIX = "CONVO_MEMORY"

CONFIG_FILE_NAME = "config.yaml"

_BOOL_WORDS = {
    "true": True, "yes": True, "on": True,
    "false": False, "no": False, "off": False,
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _parse_env_value(raw: str) -> Any:
    """Coerce an environment string to bool, None, int or float where it looks like one."""
    lowered = raw.strip().lower()
    if lowered in _BOOL_WORDS:
        return _BOOL_WORDS[lowered]
    if lowered in ("", "none", "null"):
        return None

    for convert in (int, float):
        try:
            return convert(raw)
        except ValueError:
            continue
    return raw


def _env_overrides(prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """
    Collect nested overrides from ``{prefix}__SECTION__KEY`` variables.

    Variables with a single path segment are ignored, since every
    setting lives in a section.
    """
    marker = f"{prefix}__"
    overrides: dict[str, Any] = {}

    for name, raw in os.environ.items():
        if not name.startswith(marker):
            continue
        *sections, field = name[len(marker):].lower().split("__")
        if not sections:
            continue

        node = overrides
        for section in sections:
            node = node.setdefault(section, {})
        node[field] = _parse_env_value(raw)

    return overrides


def _read_yaml(path: Path) -> dict[str, Any]:
    """
    Read a YAML mapping.

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the document is not a mapping
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        content = yaml.safe_load(f)

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(
            f"Configuration file must contain a mapping, got: {type(content).__name__}")
    return content


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = ENV_PREFIX,
) -> Settings:
    """
    Build validated settings from defaults, a YAML file and the environment.

    Args:
        config_path: YAML file to read. None means defaults plus environment.
        env_prefix: Prefix of override variables

    Returns:
        Validated Settings instance

    Raises:
        FileNotFoundError: If config_path doesn't exist
        ValidationError: If a value is out of range or unknown
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        data = _read_yaml(Path(config_path))

    return Settings(**_deep_merge(data, _env_overrides(env_prefix)))


def get_default_config_path() -> Path | None:
    """
    Locate a config file when none is given on the command line.

    Looks in ./config.yaml, ./config/config.yaml and
    ~/.convo_memory/config.yaml, in that order.
    """
    candidates = (
        Path.cwd() / CONFIG_FILE_NAME,
        Path.cwd() / "config" / CONFIG_FILE_NAME,
        Path.home() / ".convo_memory" / CONFIG_FILE_NAME,
    )
    for path in candidates:
        if path.is_file():
            return path
    return None
