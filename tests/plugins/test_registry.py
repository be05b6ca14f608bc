"""
Brief: Tests for plugin alias and dotted-path resolution.

Inputs:
  - None

Outputs:
  - None
"""

import pytest

from ensdns.plugins.resolve.base import BasePlugin, plugin_aliases
from ensdns.plugins.resolve.ens_records import EnsRecords
from ensdns.plugins.resolve.registry import alias_table, get_plugin_class


def test_alias_table_registers_builtin_aliases():
    table = alias_table()
    for alias in ("ens", "ens_records", "eip1185", "ensrecords"):
        assert table[alias] is EnsRecords


def test_get_plugin_class_normalizes_alias():
    assert get_plugin_class("ENS-Records") is EnsRecords
    assert get_plugin_class(" eip1185 ") is EnsRecords


def test_get_plugin_class_dotted_path():
    cls = get_plugin_class("ensdns.plugins.resolve.ens_records.EnsRecords")
    assert cls is EnsRecords


def test_get_plugin_class_dotted_path_not_a_plugin():
    with pytest.raises(TypeError):
        get_plugin_class("ensdns.cache.EnsCache")
    with pytest.raises(TypeError):
        get_plugin_class("ensdns.constants.ENS_ADDRESS")


def test_get_plugin_class_unknown_alias_suggests():
    with pytest.raises(KeyError) as excinfo:
        get_plugin_class("enz")
    assert "ens" in str(excinfo.value)


def test_custom_alias_table():
    @plugin_aliases("sample")
    class Sample(BasePlugin):
        pass

    table = alias_table([EnsRecords, Sample])
    assert get_plugin_class("sample", table) is Sample
    assert get_plugin_class("ens", table) is EnsRecords
    with pytest.raises(KeyError):
        get_plugin_class("ens", {})


def test_duplicate_alias_raises():
    """
    Brief: Two classes claiming one alias is an error.

    Inputs:
      - None

    Outputs:
      - None: Asserts ValueError
    """

    @plugin_aliases("ens")
    class Impostor(BasePlugin):
        pass

    with pytest.raises(ValueError, match="Duplicate plugin alias 'ens'"):
        alias_table([EnsRecords, Impostor])
