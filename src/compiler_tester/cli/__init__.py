"""CLI entry points for compiler-tester.

Commands:
    - modes: Parse, canonicalize and expand mode strings
    - run: Execute a test corpus in the selected modes and record metrics
    - compare: Compare two benchmark snapshots
"""

from .main import main

__all__ = ["main"]
