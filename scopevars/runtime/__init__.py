"""
scopevars runtime: hierarchical reactive variable scopes.

| Layer                 | Purpose                                           |
<---------------------- + ------------------------------------------------- >
| **tracking**          | Revision counters, effects and computed memos     |
| **revision**          | Per-scope revision ledger                         |
| **core**              | Cells, descriptors and fallback tables            |
| **scope**             | Scope nodes, lifecycle and property access        |
| **declare**           | `define_variable` and its batched form            |
| **inherit**           | Lazy ancestor lookup for inherited variables      |
| **debug**             | Development-mode usage graph and leak detection   |
| **analysis**          | networkx usage graph and Graphviz export          |
"""

from . import tracking as _tracking
from . import revision as _revision
from . import core as _core
from . import debug as _debug
from . import inherit as _inherit
from . import access as _access
from . import declare as _declare
from . import scope as _scope
from . import analysis as _analysis
from .cli import build_scenario, load_scenario, main, parse_args

from .tracking import *
from .revision import *
from .core import *
from .debug import *
from .inherit import *
from .access import *
from .declare import *
from .scope import *
from .analysis import *

__all__ = []
for module in (_tracking, _revision, _core, _debug, _inherit, _access, _declare, _scope, _analysis):
    __all__.extend(getattr(module, '__all__', []))
__all__ += ['build_scenario', 'load_scenario', 'main', 'parse_args']
__all__ = list(dict.fromkeys(__all__))
