from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass
from typing import ClassVar, Dict, List, Optional, Sequence, Union, final

from dnslib import QTYPE

from ensdns.config.logging_config import BracketLevelFormatter, SyslogFormatter

logger = logging.getLogger(__name__)

_PLUGIN_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "crit": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


@dataclass
class PluginDecision:
    """
    Brief: Represents a decision made by a plugin.

    Inputs:
      - action: str indicating the decision (e.g., "allow", "deny", "override").
      - stat: Optional short label describing why the decision was taken.
      - response: Optional[bytes] DNS response to use when action == "override".
      - plugin_label: Optional[str] name of the plugin instance that decided.

    Outputs:
      - PluginDecision instance with attributes populated.
    """

    action: str
    stat: Optional[str] = None
    response: Optional[bytes] = None
    plugin_label: Optional[str] = None


class PluginContext:
    """Brief: Context passed to plugins while a query is being resolved.

    Inputs:
      - client_ip: str IP address of the requesting client.

    Outputs:
      - PluginContext instance with fields initialized.

    Example use:
        >>> from ensdns.plugins.resolve.base import PluginContext
        >>> ctx = PluginContext(client_ip="192.0.2.1")
        >>> ctx.client_ip
        '192.0.2.1'
    """

    @final
    def __init__(self, client_ip: str) -> None:
        self.client_ip = client_ip


class BasePlugin:
    """Brief: Base class for all plugins.

    Plugins control execution order using:
      - pre_priority (for pre_resolve hooks; lower runs first)
      - setup_priority (for setup() hooks; lower runs first)

    Inputs:
      - name: Optional human-friendly identifier used when logging. When
        omitted, the first alias or the class name is used.
      - **config: Plugin configuration including optional pre_priority,
        setup_priority, target_qtypes and logging.
        Plugins may also use an `abort_on_failure` boolean in their config to
        control whether setup() failures abort startup (default True).

    Outputs:
      - Initialized plugin instance with priority attributes and qtype
        targeting.

    Example use:
        >>> from ensdns.plugins.resolve.base import BasePlugin
        >>> class MyPlugin(BasePlugin):
        ...     pre_priority = 10
        ...     def pre_resolve(self, qname, qtype, req, ctx):
        ...         return None
        >>> plugin = MyPlugin(name="mine", pre_priority=25)
        >>> plugin.pre_priority
        25
        >>> plugin.name
        'mine'
    """

    pre_priority: ClassVar[int] = 100
    setup_priority: ClassVar[int] = 100
    aliases: ClassVar[Sequence[str]] = ()
    # Query-type targeting; "*" applies the plugin to every qtype.
    target_qtypes: ClassVar[Sequence[str]] = ("*",)

    @classmethod
    def get_aliases(cls) -> Sequence[str]:
        return tuple(getattr(cls, "aliases", ()))

    @final
    def __init__(self, name: Optional[str] = None, **config: object) -> None:
        """Initialize the BasePlugin with configuration, priorities and qtypes.

        Inputs:
          - name: Optional friendly identifier.
          - **config: Plugin configuration including (optional):
            - pre_priority (int | str): Priority for pre_resolve (1-255).
            - setup_priority (int | str): Priority for setup() (1-255); falls
              back to pre_priority when omitted.
            - target_qtypes (list[str] | str | None): qtype mnemonics or "*".
            - logging (dict | None): Per-plugin logging block.

        Outputs:
          - None (sets self.name, self.config, priorities and qtypes).
        """
        if name is not None:
            self.name = str(name)
        else:
            aliases = list(self.get_aliases())
            self.name = str(aliases[0]) if aliases else self.__class__.__name__

        self.config = config
        logger.debug("loading %s", self)

        self.logger = logging.getLogger(getattr(self.__class__, "__module__", __name__))
        plugin_logging_cfg = config.get("logging")
        if isinstance(plugin_logging_cfg, dict):
            self._init_instance_logger(plugin_logging_cfg)

        self.pre_priority = self._parse_priority_value(
            config.get("pre_priority", self.__class__.pre_priority),
            "pre_priority",
            logger,
        )
        raw_setup = config.get(
            "setup_priority",
            config.get("pre_priority", getattr(self.__class__, "setup_priority", 100)),
        )
        self.setup_priority = self._parse_priority_value(
            raw_setup,
            "setup_priority",
            logger,
        )

        self._target_qtypes = self._normalize_qtype_list(
            config.get("target_qtypes", getattr(self.__class__, "target_qtypes", ("*",)))
        )

    def _init_instance_logger(self, logging_cfg: Dict[str, object]) -> None:
        """Brief: Configure a per-plugin logger from a logging config block.

        Inputs:
          - logging_cfg: Mapping with level, stderr, file and syslog options
            matching the root-level "logging" config.

        Outputs:
          - None; replaces self.logger with the configured module logger.
        """
        cfg: Dict[str, object] = dict(logging_cfg)

        logger_name = getattr(self.__class__, "__module__", __name__)
        plugin_logger = logging.getLogger(str(logger_name))

        level_str = str(cfg.get("level", "info")).lower()
        plugin_logger.setLevel(_PLUGIN_LOG_LEVELS.get(level_str, logging.INFO))

        for handler in list(plugin_logger.handlers):
            plugin_logger.removeHandler(handler)

        formatter = BracketLevelFormatter(fmt="%(asctime)s %(level_tag)s %(name)s: %(message)s")

        if bool(cfg.get("stderr", True)):
            stderr_handler = logging.StreamHandler(sys.stderr)
            stderr_handler.setFormatter(formatter)
            plugin_logger.addHandler(stderr_handler)

        file_path = cfg.get("file")
        if isinstance(file_path, str) and file_path.strip():
            path = os.path.abspath(os.path.expanduser(file_path.strip()))
            try:
                os.makedirs(os.path.dirname(path), exist_ok=True)
                file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
                file_handler.setFormatter(formatter)
                plugin_logger.addHandler(file_handler)
            except OSError:  # pragma: no cover - environment-specific
                plugin_logger.warning(
                    "Failed to configure file logging for plugin %s", self.name
                )

        syslog_cfg = cfg.get("syslog")
        if syslog_cfg:
            try:
                if isinstance(syslog_cfg, dict):
                    address = syslog_cfg.get("address", "/dev/log")
                    facility = getattr(
                        logging.handlers.SysLogHandler,
                        f"LOG_{str(syslog_cfg.get('facility', 'USER')).upper()}",
                        logging.handlers.SysLogHandler.LOG_USER,
                    )
                else:
                    address = "/dev/log"
                    facility = logging.handlers.SysLogHandler.LOG_USER

                syslog_handler = logging.handlers.SysLogHandler(
                    address=address, facility=facility
                )
                syslog_handler.setFormatter(SyslogFormatter())
                plugin_logger.addHandler(syslog_handler)
            except (OSError, ValueError):  # pragma: no cover - environment-specific
                plugin_logger.warning(
                    "Failed to configure syslog for plugin %s", self.name
                )

        plugin_logger.propagate = False
        self.logger = plugin_logger

    @staticmethod
    def _normalize_qtype_list(raw: object) -> List[str]:
        """Brief: Normalize a raw target_qtypes value into uppercase names.

        Inputs:
          - raw: None, a single string, or a list/tuple of qtype mnemonics.

        Outputs:
          - list[str]: Uppercase names, or ["*"] for "all qtypes".
        """
        if raw is None:
            return ["*"]

        if isinstance(raw, str):
            entries = [raw]
        elif isinstance(raw, (list, tuple)):
            entries = [str(x) for x in raw]
        else:
            logger.warning(
                "BasePlugin: ignoring invalid target_qtypes value %r (expected str or list)",
                raw,
            )
            return ["*"]

        normalized: List[str] = []
        for entry in entries:
            text = str(entry).strip()
            if not text:
                continue
            if text == "*":
                return ["*"]
            normalized.append(text.upper())

        return normalized or ["*"]

    @staticmethod
    def _parse_priority_value(value: object, key: str, logger: logging.Logger) -> int:
        """Brief: Parse and clamp a priority value to the inclusive range [1, 255].

        Example:
            >>> BasePlugin._parse_priority_value("25", "pre_priority", logger)
            25
            >>> BasePlugin._parse_priority_value(300, "pre_priority", logger)
            255
        """
        default = 100
        try:
            val = int(value)  # type: ignore[arg-type]
        except (ValueError, TypeError):
            logger.warning("Invalid %s %r; using default %d", key, value, default)
            return default

        if val < 1:
            logger.warning("%s below 1; clamping to 1", key)
            return 1
        if val > 255:
            logger.warning("%s above 255; clamping to 255", key)
            return 255
        return val

    def targets_qtype(self, qtype: Union[int, str]) -> bool:
        qtypes = list(getattr(self, "_target_qtypes", ["*"]))
        if not qtypes or "*" in qtypes:
            return True
        return self.qtype_name(qtype) in {qt.upper() for qt in qtypes}

    @staticmethod
    def qtype_name(qtype: Union[int, str]) -> str:
        """Brief: Normalize a DNS qtype value to its uppercase mnemonic.

        Inputs:
          - qtype: Integer code (e.g. 1) or mnemonic string (e.g. "a").

        Outputs:
          - str: Uppercase name, or the stringified code when unknown.
        """
        if isinstance(qtype, int):
            return str(QTYPE.get(qtype, str(qtype))).upper()
        return str(qtype).upper()

    @staticmethod
    def normalize_qname(
        qname: object,
        *,
        lower: bool = True,
        strip_trailing_dot: bool = True,
    ) -> str:
        """Brief: Normalize a qname-like value (str or dnslib label) into a string."""
        text = str(qname)
        if strip_trailing_dot:
            text = text.rstrip(".")
        if lower:
            text = text.lower()
        return text

    def pre_resolve(
        self, qname: str, qtype: int, req: bytes, ctx: PluginContext
    ) -> Optional[PluginDecision]:
        """Brief: Hook that runs before the DNS query is resolved.

        Inputs:
          - qname: The queried domain name.
          - qtype: The query type.
          - req: The raw DNS request.
          - ctx: The plugin context.

        Outputs:
          - PluginDecision to short-circuit handling, or None to let the query
            proceed unchanged (default).

        Example use:
            >>> plugin = BasePlugin()
            >>> plugin.pre_resolve("example.com", 1, b'', PluginContext('127.0.0.1')) is None
            True
        """
        return None

    def setup(self) -> None:
        """Brief: Run one-time initialization logic for setup-aware plugins.

        Notes:
          - Base implementation is a no-op. The CLI invokes setup() on plugins
            that override it, in ascending setup_priority order.
        """
        return None

    def close(self) -> None:
        """Brief: Release resources acquired in setup(); no-op by default."""
        return None


def plugin_aliases(*aliases: str):
    """Brief: Decorator to set aliases on a plugin class for registry discovery.

    Example:
        >>> @plugin_aliases("ens", "ens_records")
        ... class EnsRecords(BasePlugin):
        ...     pass
        >>> EnsRecords.aliases
        ('ens', 'ens_records')
    """

    def _wrap(cls: type) -> type:
        cls.aliases = tuple(aliases)
        return cls

    return _wrap
