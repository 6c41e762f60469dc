"""goshell - Embeddable Command Shell Evaluator.

A small shell language runtime that can be hosted inside Python programs,
with closures, aggregate literals and threaded Unix-style pipelines.

Features:
- Sigil-driven token evaluation ($var, <exec>, [list], {closure})
- Dynamic command registry with scoped names
- Concurrent pipeline stages joined by in-process OS pipes
- Interactive REPL and script runner
"""

__version__ = "1.0.0"
__license__ = "MIT"

from goshell.cli import main

__all__ = ["main", "__version__"]
