"""Edge Oracle - model-vs-market forecasting, stake sizing and backtesting."""

__version__ = "0.1.0"
