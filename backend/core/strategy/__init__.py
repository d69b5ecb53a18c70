"""Signal fusion strategy.

Public API:
- fuse: Pure threshold rule from indicator values to a Decision
- fuse_snapshot: Same rule applied to an IndicatorSnapshot
- SignalFuser: Window of bars -> indicators -> Decision
- FusionResult: Decision plus the snapshot it came from
"""

from core.strategy.fuser import FusionResult, SignalFuser, fuse, fuse_snapshot

__all__ = [
    "FusionResult",
    "SignalFuser",
    "fuse",
    "fuse_snapshot",
]
