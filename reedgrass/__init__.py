"""reedgrass - transcode lossless releases and upload them to a Gazelle tracker."""

from reedgrass.__version__ import __version__

__all__ = ["__version__"]
