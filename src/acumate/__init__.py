"""
AcuMate Lint - cross-file validation for AcuMate screens.

Checks screen TypeScript and HTML templates against each other and against
the graph metadata a connected backend reports.
"""

from __future__ import annotations

# Re-export commonly used types for convenience
from ._version import get_version
from .core import ir
from .core.errors import AcuMateError, BackendError, ConfigError, ParseError

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "AcuMateError",
    "BackendError",
    "ConfigError",
    "ParseError",
]
