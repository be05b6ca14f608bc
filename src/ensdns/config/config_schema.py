"""JSON Schema-based validation for ensdns YAML configuration.

This module loads the schema stored under ``assets/config-schema.json`` and
validates the top-level ``config.yaml`` mapping after variable expansion.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator, ValidationError

logger = logging.getLogger(__name__)

_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")
_VAR_KEY = re.compile(r"[A-Z_][A-Z0-9_]*")


def _normalize_variables_for_validation(cfg: Dict[str, Any]) -> None:
    """Brief: Expand top-level `vars` into the config and remove the group.

    Inputs:
      - cfg: Parsed YAML configuration mapping (mutated in-place).

    Outputs:
      - None.

    Behavior:
      - `variables` is accepted as an alias for `vars`.
      - A string value that is exactly `$KEY` or `${KEY}` is replaced with
        the variable's YAML value (list/dict/int/etc.).
      - `${KEY}` occurrences inside longer strings are substituted as text.
      - Cycles between variables raise ValueError.
    """

    variables = cfg.get("vars")
    if variables is None and "variables" in cfg:
        variables = cfg.get("variables")
    if variables is None:
        return
    if not isinstance(variables, dict):
        raise ValueError("config.vars must be a mapping when present")

    for k in variables.keys():
        if not isinstance(k, str) or not _VAR_KEY.fullmatch(k):
            raise ValueError(f"config.vars key {k!r} must match [A-Z_][A-Z0-9_]*")

    resolved: Dict[str, Any] = {}

    def _resolve_var(key: str, stack: List[str]) -> Any:
        if key in resolved:
            return resolved[key]
        if key in stack:
            cycle = " -> ".join(stack + [key])
            raise ValueError(f"config.variables contains a cycle: {cycle}")
        if key not in variables:
            raise KeyError(key)
        value = _expand_obj(variables[key], stack + [key])
        resolved[key] = value
        return value

    def _whole_var(text: str) -> Optional[str]:
        if text.startswith("${") and text.endswith("}") and text[2:-1] in variables:
            return text[2:-1]
        if text.startswith("$") and text[1:] in variables:
            return text[1:]
        return None

    def _expand_string(text: str, stack: List[str]) -> Any:
        whole = _whole_var(text)
        if whole is not None:
            return copy.deepcopy(_resolve_var(whole, stack))

        def _repl(match: re.Match[str]) -> str:
            try:
                v = _resolve_var(match.group(1), stack)
            except KeyError:
                return match.group(0)
            if isinstance(v, bool):
                return "true" if v else "false"
            if v is None:
                return "null"
            if isinstance(v, (int, float, str)):
                return str(v)
            return json.dumps(v)

        return _VAR_PATTERN.sub(_repl, text)

    def _expand_obj(obj: Any, stack: List[str]) -> Any:
        if isinstance(obj, str):
            return _expand_string(obj, stack)
        if isinstance(obj, list):
            return [_expand_obj(item, stack) for item in obj]
        if isinstance(obj, dict):
            return {k: _expand_obj(v, stack) for k, v in obj.items()}
        return obj

    for k in list(variables.keys()):
        _resolve_var(str(k), [])

    for top_key in list(cfg.keys()):
        if top_key in ("vars", "variables"):
            continue
        cfg[top_key] = _expand_obj(cfg[top_key], [])

    cfg.pop("vars", None)
    cfg.pop("variables", None)


def _normalize_plugin_entries_for_validation(cfg: Dict[str, Any]) -> None:
    """Brief: Drop disabled plugin entries and strip meta-only keys.

    Inputs:
      - cfg: Parsed YAML configuration mapping (mutated in-place).

    Outputs:
      - None.

    Supported meta fields:
      - enabled: When false (entry level or inside entry.config), the entry
        is removed.
      - comment: Human-only string; removed.
    """

    plugins = cfg.get("plugins")
    if not isinstance(plugins, list):
        return

    normalized: List[Any] = []
    for entry in plugins:
        if not isinstance(entry, dict):
            normalized.append(entry)
            continue

        enabled_obj: Any = entry.get("enabled")
        config_obj = entry.get("config")
        if isinstance(config_obj, dict) and "enabled" in config_obj:
            enabled_obj = config_obj.pop("enabled")
        if enabled_obj is not None and not bool(enabled_obj):
            continue

        entry.pop("enabled", None)
        entry.pop("comment", None)
        if isinstance(config_obj, dict):
            config_obj.pop("comment", None)
        normalized.append(entry)

    cfg["plugins"] = normalized


def get_default_schema_path() -> Path:
    """Brief: Locate ``assets/config-schema.json`` relative to the source tree.

    Outputs:
      - Path: Schema path (may not exist in installed builds).
    """

    return Path(__file__).resolve().parents[3] / "assets" / "config-schema.json"


def _format_errors(errors: List[ValidationError], *, config_path: Optional[str]) -> str:
    header = (
        f"Invalid configuration in {config_path}:" if config_path else "Invalid configuration:"
    )
    lines: List[str] = [header]
    for err in errors:
        instance_path = "/".join(str(p) for p in err.path) or "<root>"
        schema_path = "/".join(str(p) for p in err.schema_path)
        lines.append(f"- {instance_path}: {err.message} (schema: {schema_path})")
    return "\n".join(lines)


def validate_config(
    cfg: Dict[str, Any],
    *,
    schema_path: Optional[Path] = None,
    config_path: Optional[str] = "./config.yaml",
    unknown_keys: str = "warn",
) -> None:
    """Brief: Validate a parsed YAML configuration mapping against JSON Schema.

    Inputs:
      - cfg: Dict loaded from YAML (mutated: variables expanded, disabled
        plugins removed).
      - schema_path: Optional explicit schema path.
      - config_path: YAML path, used only in error messages.
      - unknown_keys: "ignore", "warn" (default) or "error" for properties
        the schema does not describe.

    Outputs:
      - None on success.

    Raises:
      - ValueError: On any non-extra-property validation error, or on extra
        properties when unknown_keys == "error".

    Example:
      >>> validate_config({"plugins": [{"module": "ens"}]})
    """

    if unknown_keys not in {"ignore", "warn", "error"}:
        raise ValueError(
            f"unknown_keys policy must be 'ignore', 'warn', or 'error', got {unknown_keys!r}"
        )

    _normalize_variables_for_validation(cfg)
    _normalize_plugin_entries_for_validation(cfg)

    effective_schema_path = schema_path or get_default_schema_path()
    if not effective_schema_path.is_file():
        logger.warning(
            "Configuration schema file %s not found; skipping JSON Schema validation",
            effective_schema_path,
        )
        return None

    with open(effective_schema_path, "r", encoding="utf-8") as f:
        schema = json.load(f)

    validator = Draft202012Validator(schema)
    all_errors = sorted(validator.iter_errors(cfg), key=lambda e: [str(p) for p in e.path])
    if not all_errors:
        return None

    extra = [e for e in all_errors if e.validator == "additionalProperties"]
    other = [e for e in all_errors if e.validator != "additionalProperties"]

    if other:
        raise ValueError(_format_errors(other + extra, config_path=config_path))

    message = _format_errors(extra, config_path=config_path)
    if unknown_keys == "error":
        raise ValueError(message)
    if unknown_keys == "warn":
        logger.warning(message)
    return None
