"""Exception types raised across the transcode and upload pipeline."""

from __future__ import annotations


class ReedgrassError(Exception):
    """Base class for every error the pipeline raises on purpose."""

    #: Expected rejections are reported and end the run with exit status 0.
    expected = False


class ResolutionError(ReedgrassError):
    """No info hash, torrent id or origin file identifies the input release."""

    expected = True


class FormatError(ReedgrassError):
    """The source release is not FLAC, so there is nothing to transcode."""

    expected = True


class TagError(ReedgrassError):
    """A source FLAC is missing one of the required tags."""

    def __init__(self, path: str, missing: list[str]):
        self.path = path
        self.missing = missing
        super().__init__(f"Required tags are not present in {path}: missing {', '.join(missing)}")


class ConsistencyError(ReedgrassError):
    """The tracker returned data that contradicts itself."""


class ToolError(ReedgrassError):
    """An external tool could not be started or exited nonzero."""

    def __init__(self, command: str, args: list[str], exit_code: int | None, stderr: str = ""):
        self.command = command
        self.args_list = list(args)
        self.exit_code = exit_code
        self.stderr = stderr
        if exit_code is None:
            message = f"{command} could not be started"
        else:
            message = f"{command} exited with status {exit_code}"
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        super().__init__(f"{message}: {detail}" if detail else message)


class TrackerError(ReedgrassError):
    """The tracker API answered with a failure payload."""


class ConfigError(ReedgrassError):
    """Configuration or command-line input is unusable."""
