"""Enable running as: python -m edgeoracle

Usage:
    python -m edgeoracle --help
    python -m edgeoracle evaluate
    python -m edgeoracle backtest
"""

from edgeoracle.cli.main import cli

if __name__ == "__main__":
    cli()
