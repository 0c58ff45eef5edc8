"""
Exception hierarchy.

Only initialization failures surface as exceptions. Per-frame problems
(no hand, bad numbers, a failed detector call) are absorbed where they
happen and logged.
"""


class GalaxyControlError(Exception):
    """Base class for all errors raised by this package."""


class DetectorUnavailable(GalaxyControlError):
    """The hand landmark detector could not be initialized."""
