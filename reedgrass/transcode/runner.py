"""Run external tools (ffprobe, sox, flac2mp3, mktorrent) as child processes."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from typing import Protocol, Sequence

from reedgrass import logger
from reedgrass.errors import ToolError

# ffprobe prints one JSON document; keep long lines readable.
_STREAM_LIMIT = 2 ** 20


@dataclass(frozen=True)
class ProcessResult:
    stdout: str
    stderr: str
    exit_code: int


class Runner(Protocol):
    async def run(self, command: str, args: Sequence[str], *, echo: bool = False) -> ProcessResult:
        ...


class ProcessRunner:
    """Spawns a process, collects its output and fails on nonzero exit.

    With ``echo`` the child's stdout is mirrored to the log as it arrives;
    stderr is mirrored only in verbose mode. No timeout is applied.
    """

    async def run(self, command: str, args: Sequence[str], *, echo: bool = False) -> ProcessResult:
        log = logger.get_logger()
        args = [str(arg) for arg in args]
        log.command(command, args)
        try:
            proc = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_STREAM_LIMIT,
            )
        except OSError as exc:
            log.error(f"cmd failed to start: {command} ({exc})")
            raise ToolError(command, args, None, str(exc)) from exc

        try:
            stdout, stderr = await asyncio.gather(
                self._drain(proc.stdout, proc.pid, echo=echo, is_stderr=False),
                self._drain(proc.stderr, proc.pid, echo=log.verbose_mode, is_stderr=True),
            )
        except ValueError as exc:
            # StreamReader.readline raises ValueError past the line limit.
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            log.error(f"cmd output overran the line limit: {command}")
            raise ToolError(command, args, proc.returncode, f"output line longer than {_STREAM_LIMIT} bytes") from exc
        exit_code = await proc.wait()
        if exit_code != 0:
            log.error(f"cmd failed: {command} {' '.join(args)}")
            raise ToolError(command, args, exit_code, stderr)
        return ProcessResult(stdout=stdout, stderr=stderr, exit_code=exit_code)

    @staticmethod
    async def _drain(stream: asyncio.StreamReader | None, pid: int, *, echo: bool, is_stderr: bool) -> str:
        if stream is None:
            return ""
        chunks: list[str] = []
        while True:
            line = await stream.readline()
            if not line:
                break
            text = line.decode("utf-8", errors="replace")
            chunks.append(text)
            if echo:
                logger.get_logger().tool_output(pid, text, stderr=is_stderr)
        return "".join(chunks)
