"""
Exceptions raised by the tracking and lesson pipeline
"""


class FretCoachError(Exception):
    """Base class for pipeline errors"""


class DetectorFailure(FretCoachError):
    """A vision pass failed on the current frame (frame is skipped)"""


class CalibrationError(FretCoachError):
    """Perspective calibration could not be built from the given taps"""
