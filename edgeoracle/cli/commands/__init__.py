"""CLI command modules.

- evaluate: Evaluate active markets and store recommendations
- resolve: Resolve pending predictions against settlements
- backtest: Aggregate scored predictions
- history: Daily prediction statistics
"""

from . import backtest, evaluate, history, resolve

__all__ = ["backtest", "evaluate", "history", "resolve"]
