"""
Brief: Tests for BasePlugin priorities, qtype targeting and helpers.

Inputs:
  - None

Outputs:
  - None
"""

import logging

from ensdns.plugins.resolve.base import BasePlugin, PluginContext, PluginDecision


class Sample(BasePlugin):
    aliases = ("sample",)
    pre_priority = 30


def test_name_defaults_to_first_alias():
    assert Sample().name == "sample"
    assert Sample(name="custom").name == "custom"
    assert BasePlugin().name == "BasePlugin"


def test_priorities_from_config_are_clamped():
    p = Sample(pre_priority="0", setup_priority=999)
    assert p.pre_priority == 1
    assert p.setup_priority == 255

    p = Sample(pre_priority="bogus")
    assert p.pre_priority == 100


def test_setup_priority_falls_back_to_pre_priority():
    assert Sample(pre_priority=40).setup_priority == 40
    assert Sample().pre_priority == 30


def test_client_targeting_is_not_part_of_base_plugin():
    p = Sample(targets=["10.0.0.0/8"], targets_ignore="10.0.0.9")
    assert not hasattr(p, "targets")
    assert not hasattr(p, "_parse_network_list")
    assert p.config["targets"] == ["10.0.0.0/8"]


def test_qtype_targeting():
    p = Sample(target_qtypes=["a", "aaaa"])
    assert p.targets_qtype(1)
    assert p.targets_qtype("AAAA")
    assert not p.targets_qtype(16)
    assert Sample(target_qtypes="*").targets_qtype(16)
    assert Sample(target_qtypes=5).targets_qtype(16)


def test_qtype_name_and_normalize_qname():
    assert BasePlugin.qtype_name(1) == "A"
    assert BasePlugin.qtype_name("txt") == "TXT"
    assert BasePlugin.normalize_qname("WWW.Example.ETH.") == "www.example.eth"
    assert BasePlugin.normalize_qname("A.", lower=False, strip_trailing_dot=False) == "A."


def test_default_hooks_are_noops():
    p = Sample()
    assert p.pre_resolve("x.eth", 1, b"", PluginContext("127.0.0.1")) is None
    assert p.setup() is None
    assert p.close() is None


def test_per_plugin_logging_block(tmp_path):
    log_path = tmp_path / "plugin.log"
    p = Sample(logging={"level": "debug", "stderr": False, "file": str(log_path)})
    try:
        assert p.logger.level == logging.DEBUG
        assert p.logger.propagate is False
        p.logger.debug("plugin message")
        for h in p.logger.handlers:
            h.flush()
        assert "[debug]" in log_path.read_text()
    finally:
        for h in list(p.logger.handlers):
            p.logger.removeHandler(h)
            h.close()
        p.logger.propagate = True
        p.logger.setLevel(logging.NOTSET)


def test_plugin_decision_defaults():
    d = PluginDecision(action="override")
    assert d.stat is None and d.response is None and d.plugin_label is None
