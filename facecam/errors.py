"""Error kinds surfaced by the compositor.

None of these are fatal to the render loop: they are caught where they occur
and turned into status text.
"""


class FacecamError(RuntimeError):
    """Base class for compositor errors."""


class CameraUnavailable(FacecamError):
    """The capture device could not be opened or never reported a frame size."""


class ModelLoadFailure(FacecamError):
    """The detector failed to initialise (exception or timeout)."""


class DetectionCycleFailure(FacecamError):
    """A single detection cycle failed; the previous snapshot is kept."""
