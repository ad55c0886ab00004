"""
Cargador de configuración de skillrules.

Precedencia (de menor a mayor):
1. Defaults de los modelos Pydantic (config/schema.py)
2. Archivo YAML (-c/--config)
3. Variables de entorno (SKILLRULES_*, CLAUDE_PROJECT_DIR)
4. Opciones de la CLI

Cada nivel se aplica con deep_merge, así que una sección parcial (por
ejemplo solo `sessions.retention_days`) no borra el resto de la sección.
"""

import os
from pathlib import Path
from typing import Any

import yaml

from .schema import AppConfig

# Variable de entorno → ruta de la clave en la configuración
_ENV_KEYS: dict[str, tuple[str, ...]] = {
    "CLAUDE_PROJECT_DIR": ("project_dir",),
    "SKILLRULES_RULES_FILE": ("rules_file",),
    "SKILLRULES_STATE_DIR": ("sessions", "state_dir"),
    "SKILLRULES_LOG_LEVEL": ("logging", "level"),
    "SKILLRULES_LOG_FILE": ("logging", "file"),
}

# Opción de la CLI (nombre del parámetro click) → ruta de la clave
_CLI_KEYS: dict[str, tuple[str, ...]] = {
    "project_dir": ("project_dir",),
    "rules_file": ("rules_file",),
    "state_dir": ("sessions", "state_dir"),
    "log_file": ("logging", "file"),
    "verbose": ("logging", "verbose"),
}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge recursivo de diccionarios. No modifica ninguno de los dos.

    Example:
        >>> deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"b": 99}, "e": 4})
        {'a': {'b': 99, 'c': 2}, 'e': 4}
    """
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _nested(path: tuple[str, ...], value: Any) -> dict[str, Any]:
    """('logging', 'file'), x → {'logging': {'file': x}}"""
    for key in reversed(path):
        value = {key: value}
    return value


def load_yaml_config(config_path: Path | None) -> dict[str, Any]:
    """Lee el archivo YAML, o devuelve {} si no se indicó ninguno.

    Raises:
        FileNotFoundError: Si config_path no existe
    """
    if not config_path:
        return {}
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_env_overrides() -> dict[str, Any]:
    """Overrides desde variables de entorno (ver _ENV_KEYS).

    Las variables vacías se ignoran. SKILLRULES_LOG_LEVEL se pasa a
    minúsculas para aceptar DEBUG, Info, etc.
    """
    overrides: dict[str, Any] = {}
    for var, path in _ENV_KEYS.items():
        value = os.environ.get(var)
        if not value:
            continue
        if var == "SKILLRULES_LOG_LEVEL":
            value = value.lower()
        overrides = deep_merge(overrides, _nested(path, value))
    return overrides


def apply_cli_overrides(config_dict: dict[str, Any], cli_args: dict[str, Any]) -> dict[str, Any]:
    """Aplica las opciones de la CLI sobre la configuración ya mergeada.

    Solo se aplican las opciones presentes (no None); el resto de claves de
    cli_args (p. ej. `config`) se ignoran.
    """
    result = config_dict
    for option, path in _CLI_KEYS.items():
        value = cli_args.get(option)
        if value is not None:
            result = deep_merge(result, _nested(path, value))
    return result


def load_config(
    config_path: Path | None = None,
    cli_args: dict[str, Any] | None = None,
) -> AppConfig:
    """Carga y valida la configuración completa.

    Args:
        config_path: Archivo YAML de configuración
        cli_args: Opciones de la CLI

    Returns:
        AppConfig validado

    Raises:
        FileNotFoundError: Si config_path no existe
        ValidationError: Si la configuración final no es válida
    """
    merged = deep_merge(load_yaml_config(config_path), load_env_overrides())
    merged = apply_cli_overrides(merged, cli_args or {})
    return AppConfig(**merged)
