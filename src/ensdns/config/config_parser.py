"""Configuration parsing and plugin loading for ensdns.

Brief:
  This module centralizes:
    - reading YAML config files
    - merging variables from config/env/CLI
    - JSON Schema validation (via validate_config)
    - building plugin instances from config plugin specs

Inputs:
  - YAML config paths and parsed mappings

Outputs:
  - Normalized config dicts and constructed plugin instances
"""

from __future__ import annotations

import os
import re
from typing import Any, Dict, List, Optional, Union

import yaml

from ..plugins.resolve.base import BasePlugin
from ..plugins.resolve.registry import alias_table, get_plugin_class
from .config_schema import validate_config

_VAR_KEY = re.compile(r"[A-Z_][A-Z0-9_]*")


def _is_var_key(key: str) -> bool:
    """Brief: True when key is ALL_UPPERCASE and matches [A-Z_][A-Z0-9_]*."""

    return bool(key) and bool(_VAR_KEY.fullmatch(key))


def _parse_yaml_value(text: str) -> Any:
    """Brief: Parse a CLI/environment variable value as YAML.

    Inputs:
      - text: String containing YAML scalar/list/dict.

    Outputs:
      - Any: Parsed value (falls back to original string on parse errors).
    """

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        return text


def parse_config_variables(
    cfg: Dict[str, Any],
    *,
    cli_vars: Optional[List[str]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Brief: Merge config/environment/CLI variables into cfg['vars'].

    Inputs:
      - cfg: Parsed YAML configuration mapping (mutated in-place).
      - cli_vars: Optional list of CLI `KEY=YAML` assignments.
      - environ: Optional environment mapping (defaults to os.environ).

    Outputs:
      - dict: The merged variables mapping stored back onto cfg['vars'].

    Precedence:
      - CLI (-v/--var) overrides environment overrides config-file variables.

    Example:
      >>> cfg = {'vars': {'TIMEOUT': 5}}
      >>> parse_config_variables(cfg, cli_vars=['TIMEOUT=30'], environ={})['TIMEOUT']
      30
    """

    base = cfg.pop("vars", None)
    legacy = cfg.pop("variables", None)
    merged: Dict[str, Any] = {}
    for group in (legacy, base):
        if group is None:
            continue
        if not isinstance(group, dict):
            raise ValueError("config.vars must be a mapping when present")
        merged.update(group)

    env = os.environ if environ is None else environ
    for k, v in env.items():
        if isinstance(k, str) and _is_var_key(k):
            merged[k] = _parse_yaml_value(str(v))

    for assignment in cli_vars or []:
        if "=" not in assignment:
            raise ValueError(
                "Invalid -v/--var value (expected KEY=YAML), got: %r" % assignment
            )
        k, raw = assignment.split("=", 1)
        k = k.strip()
        if not _is_var_key(k):
            raise ValueError(
                "Invalid variable name %r (must be ALL_UPPERCASE and match [A-Z_][A-Z0-9_]*)"
                % k
            )
        merged[k] = _parse_yaml_value(raw)

    cfg["vars"] = merged
    return merged


def parse_config_file(
    config_path: str,
    *,
    cli_vars: Optional[List[str]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Brief: Read, variable-merge, and schema-validate a YAML config file.

    Inputs:
      - config_path: Path to the YAML configuration file.
      - cli_vars: Optional list of CLI `KEY=YAML` assignments (from -v/--var).
      - environ: Optional environment mapping (defaults to os.environ).

    Outputs:
      - dict: Parsed configuration mapping with variables expanded.

    Raises:
      - ValueError: When schema validation fails or variables are invalid.
    """

    with open(config_path, "r") as f:
        cfg = yaml.safe_load(f) or {}

    if not isinstance(cfg, dict):
        raise ValueError("Configuration root must be a mapping")

    parse_config_variables(cfg, cli_vars=list(cli_vars or []), environ=environ)
    validate_config(cfg, config_path=config_path)
    return cfg


def _validate_plugin_config(plugin_cls: type[BasePlugin], config: dict | None) -> dict:
    """Brief: Validate and normalize plugin configuration via its config model.

    Inputs:
      - plugin_cls: Plugin class (subclass of BasePlugin).
      - config: Raw config mapping for this plugin (may be None).

    Outputs:
      - dict: Validated mapping (model defaults filled in) to pass into
        plugin_cls, or the original mapping when the plugin has no model.

    Raises:
      - ValueError: The model rejected the config.
    """

    cfg = dict(config or {})

    get_model = getattr(plugin_cls, "get_config_model", None)
    if not callable(get_model):
        return cfg
    model_cls = get_model()
    if model_cls is None:
        return cfg
    try:
        model_instance = model_cls(**cfg)
    except Exception as exc:
        raise ValueError(
            f"Invalid configuration for plugin {plugin_cls.__name__}: {exc}"
        ) from exc

    dump = getattr(model_instance, "model_dump", None) or model_instance.dict
    return dict(dump())


def load_plugins(plugin_specs: Optional[List[Union[str, dict]]]) -> List[BasePlugin]:
    """
    Loads and initializes plugins from a list of plugin specifications.

    Args:
        plugin_specs: A list where each item is either a dict with keys
                      {"module": <path-or-alias>, "name": <str>, "config": {...}}
                      or a string alias/dotted path.

    Returns:
        A list of initialized (not yet set up) plugin instances.

    Example use:
        >>> plugins = load_plugins(["ens"])
        >>> plugins[0].name
        'ens'
    """
    aliases = alias_table()
    plugins: List[BasePlugin] = []
    for spec in plugin_specs or []:
        if isinstance(spec, str):
            module_path, name, config = spec, None, {}
        else:
            module_path = spec.get("module")
            name = spec.get("name")
            config = spec.get("config") or {}
        if not module_path:
            continue

        plugin_cls = get_plugin_class(module_path, aliases)
        validated_config = _validate_plugin_config(plugin_cls, config)
        plugins.append(plugin_cls(name=name, **validated_config))
    return plugins
