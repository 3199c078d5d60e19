# -*- coding: utf-8 -*
"""A condition system for Python: signal, handle, muffle, restart.

Conditions are classified by ordered tag sequences, handled either by
exiting handlers (non-local exit, like `try`/`except`) or by in-place
handlers (run at the signal site, without unwinding), and resumed via
restarts.

See ``dir(condsig)`` and the submodule docstrings for more.
"""

__version__ = '0.1.0'

from .collections import *  # noqa: F401, F403
from .conditions import *  # noqa: F401, F403
from .handlers import *  # noqa: F401, F403
from .options import *  # noqa: F401, F403
from .signals import *  # noqa: F401, F403
from .stack import *  # noqa: F401, F403
