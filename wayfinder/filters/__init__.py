"""
Wayfinder signal filters.

Architecture:
------------
    SignalFilter (ABC)              # Scalar filter interface
        ├── BeaconSignalState       # Per-beacon RSSI: outliers + weighting + EMA + quality
        └── DistanceSmoother        # Adaptive-alpha EMA for distance-to-destination
    PositionFilter                  # Accuracy/speed/jump gates + EMA + moving average

Usage:
------
    from wayfinder.filters import PositionFilter
    pf = PositionFilter(PositionFilterConfig.fast_response())
    if pf.update(fix):
        print(pf.position, pf.current_speed)
"""

from .base import SignalFilter
from .distance import DistanceSmoother
from .position import PositionFilter
from .rssi import BeaconSignalState

__all__ = [
    "BeaconSignalState",
    "DistanceSmoother",
    "PositionFilter",
    "SignalFilter",
]
