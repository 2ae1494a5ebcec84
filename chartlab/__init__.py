"""
ChartLab Backend

Technical indicators, chart-pattern relationship matching, signal
detection and crossover backtests over caller-supplied candles.
"""

__version__ = "0.1.0"
