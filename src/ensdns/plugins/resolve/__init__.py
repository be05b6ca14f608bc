"""Resolve-phase plugins.

Brief: Plugins that may answer a query before it reaches any upstream.
"""

from __future__ import annotations

from .base import BasePlugin, PluginContext, PluginDecision, plugin_aliases

__all__ = ["BasePlugin", "PluginContext", "PluginDecision", "plugin_aliases"]
