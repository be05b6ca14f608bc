"""ensdns plugin namespace package.

Brief:
    Groups built-in plugins under the ``ensdns.plugins`` namespace so
    subpackages such as ``ensdns.plugins.resolve`` are importable for tests
    and runtime code.
"""
