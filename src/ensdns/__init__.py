"""ensdns package"""

# Re-export the plugins subpackage so dotted paths like 'ensdns.plugins.*'
# work with tooling that traverses attributes instead of using importlib.
from . import plugins as plugins

__version__ = "0.1.0"
