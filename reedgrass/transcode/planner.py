"""Decide which encodings to produce for a source release.

The decision is an ordered table of rules. Order matters: it fixes which
output becomes the primary upload file and which become extra files.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from reedgrass import logger
from reedgrass.__version__ import __version__
from reedgrass.release.types import LOSSLESS_16, ReleaseGroup, SiblingRelease, SourceRelease
from reedgrass.transcode.naming import format_dirname
from reedgrass.transcode.types import AnalyzedFile, TargetFormat, TranscodeOptions, TranscodeTask
from reedgrass.transcode.validator import is_eligible_for_flac16, is_mp3_incompatible

# The upload form accepts one primary torrent plus two extra files.
MAX_UPLOAD_FILES = 3
V0_ENCODING = "V0 (VBR)"
CBR320_ENCODING = "320"
TOOLCHAIN_SIGNATURE = f"reedgrass@{__version__}"


def flac16_rate(sample_rate: int) -> int:
    """Target rate for one file: 48k family stays 48k, anything else goes 44.1k."""
    return 48000 if sample_rate and sample_rate % 48000 == 0 else 44100


def sox_command(files: Sequence[AnalyzedFile]) -> str:
    rates = sorted({flac16_rate(f.sample_rate) for f in files})
    rate = str(rates[0]) if len(rates) == 1 else "<" + "|".join(str(r) for r in rates) + ">"
    return f"sox -G input.flac -b16 output.flac rate -v -L {rate} dither"


def flac2mp3_command(preset: str) -> str:
    return f"flac2mp3 --preset={preset}"


def release_description(permalink: str, source: SourceRelease, command: str) -> str:
    return (
        f"[b][code]transcode source:[/code][/b] [url={permalink}][code]{source.format} / {source.encoding}[/code][/url]\n"
        f"[b][code]transcode command:[/code][/b] [code]{command}[/code]\n"
        f"[b][code]transcode toolchain:[/code][/b] [code]{TOOLCHAIN_SIGNATURE}[/code]"
    )


@dataclass(frozen=True)
class PlanContext:
    group: ReleaseGroup
    source: SourceRelease
    edition_group: Sequence[SiblingRelease]
    files: Sequence[AnalyzedFile]
    options: TranscodeOptions
    output_root: Path
    permalink: str

    def edition_has(self, encoding: str) -> bool:
        return any(release.encoding == encoding for release in self.edition_group)


@dataclass(frozen=True)
class PlanRule:
    """Produce one encoding when ``applies`` holds for the context."""
    name: str
    format: TargetFormat
    encoding: str
    label: str
    applies: Callable[[PlanContext], bool]
    command: Callable[[PlanContext], str]

    def build(self, ctx: PlanContext) -> TranscodeTask:
        command = self.command(ctx)
        return TranscodeTask(
            output_dir=ctx.output_root / format_dirname(ctx.group, ctx.source, self.label),
            format=self.format,
            bitrate=self.encoding,
            preset=self.label,
            command=command,
            release_description=release_description(ctx.permalink, ctx.source, command),
            skip_upload=ctx.options.no_upload or ctx.edition_has(self.encoding),
        )


def _wants_flac16(ctx: PlanContext) -> bool:
    if ctx.options.no_flac:
        return False
    if not is_eligible_for_flac16(ctx.source.encoding, ctx.files):
        return False
    return ctx.options.always_transcode or not ctx.edition_has(LOSSLESS_16)


def _wants_mp3(encoding: str, disabled: Callable[[TranscodeOptions], bool]) -> Callable[[PlanContext], bool]:
    def applies(ctx: PlanContext) -> bool:
        if disabled(ctx.options) or is_mp3_incompatible(ctx.files):
            return False
        return ctx.options.always_transcode or not ctx.edition_has(encoding)

    return applies


PLAN_RULES: tuple[PlanRule, ...] = (
    PlanRule(
        name="FLAC16",
        format="FLAC",
        encoding=LOSSLESS_16,
        label="FLAC",
        applies=_wants_flac16,
        command=lambda ctx: sox_command(ctx.files),
    ),
    PlanRule(
        name="V0",
        format="MP3",
        encoding=V0_ENCODING,
        label="V0",
        applies=_wants_mp3(V0_ENCODING, lambda options: options.no_v0),
        command=lambda ctx: flac2mp3_command("V0"),
    ),
    PlanRule(
        name="320",
        format="MP3",
        encoding=CBR320_ENCODING,
        label="320",
        applies=_wants_mp3(CBR320_ENCODING, lambda options: options.no_320),
        command=lambda ctx: flac2mp3_command("320"),
    ),
)


def build_plan(ctx: PlanContext, rules: Sequence[PlanRule] = PLAN_RULES) -> list[TranscodeTask]:
    """Evaluate ``rules`` in order and return the tasks to run.

    Planning stops before an uploadable task beyond the upload form's
    file limit would be added. An empty list means there is nothing to do.
    """
    if is_mp3_incompatible(ctx.files):
        logger.warning("Source has more than 2 channels; no MP3 transcodes will be made")
    tasks: list[TranscodeTask] = []
    uploadable = 0
    for rule in rules:
        if not rule.applies(ctx):
            logger.verbose(f"[-] Skip {rule.name}")
            continue
        task = rule.build(ctx)
        if not task.skip_upload:
            if uploadable == MAX_UPLOAD_FILES:
                logger.warning(f"Upload form takes at most {MAX_UPLOAD_FILES} files; not planning {rule.name} or later")
                break
            uploadable += 1
        logger.verbose(f"[+] Will make {rule.name}{' (local only)' if task.skip_upload else ''}")
        tasks.append(task)
    return tasks
