"""Source validation, transcode planning and execution."""

from .executor import DirectoryCreator, TranscodeExecutor, mirror_auxiliary_files
from .planner import PLAN_RULES, PlanContext, PlanRule, build_plan
from .runner import ProcessResult, ProcessRunner
from .torrent import MktorrentBuilder, TorrentOptions
from .types import AnalyzedFile, CompletedTask, TranscodeOptions, TranscodeTask
from .validator import FfprobeProber, analyze, is_eligible_for_flac16, is_mp3_incompatible

__all__ = [
    "AnalyzedFile",
    "CompletedTask",
    "DirectoryCreator",
    "FfprobeProber",
    "MktorrentBuilder",
    "PLAN_RULES",
    "PlanContext",
    "PlanRule",
    "ProcessResult",
    "ProcessRunner",
    "TorrentOptions",
    "TranscodeExecutor",
    "TranscodeOptions",
    "TranscodeTask",
    "analyze",
    "build_plan",
    "is_eligible_for_flac16",
    "is_mp3_incompatible",
    "mirror_auxiliary_files",
]
