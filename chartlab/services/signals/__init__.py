"""
Signal Service

Detectors that judge the latest bar (crossovers, RSI extremes, squeezes,
breakouts, volume spikes) and a scanner for historical crossing events.
"""

from chartlab.services.signals.service import SignalService, get_signal_service

__all__ = ["SignalService", "get_signal_service"]
