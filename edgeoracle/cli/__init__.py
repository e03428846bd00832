"""CLI package for Edge Oracle.

Provides a unified command-line interface:
- Market evaluation and stake recommendations
- Resolution of stored predictions
- Backtesting and daily history
"""

from .main import cli

__all__ = ["cli"]
