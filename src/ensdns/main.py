from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from dnslib import QTYPE, DNSRecord

from .config.config_parser import load_plugins, parse_config_file
from .config.logging_config import init_logging
from .plugins.resolve.base import BasePlugin, PluginContext, PluginDecision


def _is_setup_plugin(plugin: BasePlugin) -> bool:
    """
    Determine whether a plugin overrides BasePlugin.setup and should
    participate in the setup phase.

    Inputs:
      - plugin: BasePlugin instance.
    Outputs:
      - bool: True if the plugin defines its own setup() implementation.
    """
    return plugin.__class__.setup is not BasePlugin.setup


def run_setup_plugins(plugins: List[BasePlugin]) -> None:
    """
    Run setup() on all setup-aware plugins in ascending setup_priority order.

    Inputs:
      - plugins: List[BasePlugin] instances, typically from load_plugins().
    Outputs:
      - None; raises RuntimeError if a setup plugin with abort_on_failure=True
        fails.

    Example use:
      >>> run_setup_plugins([])  # no-op when there are no setup plugins
    """
    logger = logging.getLogger("ensdns.main.setup")
    setup_entries: List[tuple[int, BasePlugin]] = [
        (int(getattr(p, "setup_priority", 100)), p)
        for p in plugins or []
        if _is_setup_plugin(p)
    ]
    # Stable sort; list order is preserved for equal priorities.
    setup_entries.sort(key=lambda item: item[0])

    for prio, plugin in setup_entries:
        cfg = getattr(plugin, "config", {}) or {}
        abort_on_failure = bool(cfg.get("abort_on_failure", True))
        logger.info(
            "Running setup for plugin %s (setup_priority=%d, abort_on_failure=%s)",
            plugin.name,
            prio,
            abort_on_failure,
        )
        try:
            plugin.setup()
        except Exception as e:
            logger.error("Setup for plugin %s failed: %s", plugin.name, e, exc_info=True)
            if abort_on_failure:
                raise RuntimeError(f"Setup for plugin {plugin.name} failed") from e
            logger.warning(
                "Continuing despite setup failure in plugin %s "
                "because abort_on_failure is False",
                plugin.name,
            )


def resolve_query(
    plugins: List[BasePlugin], request: DNSRecord, ctx: PluginContext
) -> Optional[PluginDecision]:
    """Brief: Offer a query to plugins in ascending pre_priority order.

    Inputs:
      - plugins: Set-up plugin instances.
      - request: Parsed DNS query.
      - ctx: Plugin context for the requesting client.

    Outputs:
      - The first "override" PluginDecision, or None when no plugin answered.
    """

    qname = str(request.q.qname)
    qtype = int(request.q.qtype)
    raw = request.pack()
    for plugin in sorted(plugins, key=lambda p: p.pre_priority):
        decision = plugin.pre_resolve(qname, qtype, raw, ctx)
        if decision is not None and decision.action == "override":
            return decision
    return None


def main(argv: List[str] | None = None) -> int:
    """
    Main entry point for the one-shot query tool.
    Loads configuration, sets up plugins, answers a single query and prints
    the reply in zone-file text.

    Args:
        argv: Command-line arguments.

    Returns:
        0 when a plugin answered, 1 on configuration errors, 2 when no
        plugin produced an answer.

    Example use:
        CLI:
            PYTHONPATH=src python -m ensdns.main --config config.yaml www.example.eth A
    """
    parser = argparse.ArgumentParser(description="Resolve DNS records stored on ENS")
    parser.add_argument("--config", default="config.yaml", help="Path to YAML config")
    parser.add_argument(
        "-v",
        "--var",
        action="append",
        default=[],
        metavar="KEY=YAML",
        help="Override a config variable (may be repeated)",
    )
    parser.add_argument(
        "--client", default="127.0.0.1", help="Client IP presented to plugins"
    )
    parser.add_argument("name", help="Query name, e.g. www.example.eth")
    parser.add_argument("type", nargs="?", default="A", help="Query type (default A)")
    args = parser.parse_args(argv)

    try:
        cfg = parse_config_file(args.config, cli_vars=args.var)
    except (OSError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 1

    init_logging(cfg.get("logging"))
    logger = logging.getLogger("ensdns.main")
    logger.info("Loaded config from %s", args.config)

    qtype = str(args.type).upper()
    if qtype not in QTYPE.reverse:
        print(f"Unknown query type {args.type!r}", file=sys.stderr)
        return 1

    try:
        plugins = load_plugins(cfg.get("plugins") or [])
    except (KeyError, TypeError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 1

    try:
        run_setup_plugins(plugins)
        request = DNSRecord.question(args.name, qtype)
        decision = resolve_query(plugins, request, PluginContext(client_ip=args.client))
    finally:
        for plugin in plugins:
            plugin.close()

    if decision is None or decision.response is None:
        logger.info("No plugin answered %s %s", args.name, qtype)
        return 2

    print(DNSRecord.parse(decision.response).toZone())
    return 0


if __name__ == "__main__":
    sys.exit(main())
