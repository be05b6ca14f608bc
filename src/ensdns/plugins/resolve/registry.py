"""Plugin lookup for the ``module:`` key of a plugin config entry.

Brief:
  A ``module`` value is either an alias of a built-in plugin ("ens",
  "eip1185") or a dotted "pkg.mod.Class" path to any BasePlugin subclass.
"""

from __future__ import annotations

import difflib
import importlib
from typing import Dict, Iterable, Optional, Type

from .base import BasePlugin
from .ens_records import EnsRecords

BUILTIN_PLUGINS = (EnsRecords,)


def _normalize(alias: str) -> str:
    return alias.strip().lower().replace("-", "_")


def alias_table(
    classes: Iterable[Type[BasePlugin]] = BUILTIN_PLUGINS,
) -> Dict[str, Type[BasePlugin]]:
    """
    Map every alias (and lowercased class name) to its plugin class.

    Inputs:
      - classes: Plugin classes to register.

    Outputs:
      - Dict[str, Type[BasePlugin]]: Normalized alias -> class.

    Raises ValueError when two classes claim the same alias.
    """
    table: Dict[str, Type[BasePlugin]] = {}
    for cls in classes:
        for alias in (*cls.get_aliases(), cls.__name__):
            key = _normalize(alias)
            other = table.get(key)
            if other is not None and other is not cls:
                raise ValueError(
                    f"Duplicate plugin alias '{key}' claimed by {cls.__name__} "
                    f"and {other.__name__}"
                )
            table[key] = cls
    return table


def get_plugin_class(
    identifier: str, aliases: Optional[Dict[str, Type[BasePlugin]]] = None
) -> Type[BasePlugin]:
    """
    Resolve identifier to a plugin class.
    - If identifier contains a dot, treat as dotted import path "pkg.mod.Class".
    - Otherwise, treat as alias and resolve via the alias table.
    """
    ident = identifier.strip()
    if "." in ident:
        modname, _, classname = ident.rpartition(".")
        if not modname or not classname:
            raise ValueError(f"Invalid plugin path '{identifier}'")
        cls = getattr(importlib.import_module(modname), classname)
        if not (isinstance(cls, type) and issubclass(cls, BasePlugin)):
            raise TypeError(f"{identifier} is not a BasePlugin subclass")
        return cls

    table = aliases if aliases is not None else alias_table()
    key = _normalize(ident)
    if key not in table:
        suggestions = difflib.get_close_matches(key, list(table), n=3)
        raise KeyError(
            f"Unknown plugin alias '{identifier}'. "
            f"Known aliases: {', '.join(sorted(table))}. "
            f"Suggestions: {suggestions}"
        )
    return table[key]
