"""Translation registration of images by DFT based cross-correlation."""

from importlib.metadata import PackageNotFoundError, version

from .affine import InterpolationMethod, translate_image
from .aligner import (
    AlignmentResult,
    FftAligner,
    PreparedReference,
    StackAlignment,
    TransformedTarget,
    align_images,
)
from .alignment import SearchBounds, SubPixelMethod
from .progress import (
    ConsoleTrackProgress,
    LoggingTrackProgress,
    NullTrackProgress,
    TrackProgress,
)
from .window import WindowMethod

__all__ = [
    "AlignmentResult",
    "ConsoleTrackProgress",
    "FftAligner",
    "InterpolationMethod",
    "LoggingTrackProgress",
    "NullTrackProgress",
    "PreparedReference",
    "SearchBounds",
    "StackAlignment",
    "SubPixelMethod",
    "TrackProgress",
    "TransformedTarget",
    "WindowMethod",
    "align_images",
    "translate_image",
]

try:
    __version__ = version("ttalign")
except PackageNotFoundError:
    __version__ = "uninstalled"
