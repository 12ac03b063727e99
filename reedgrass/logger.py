"""
Minimal logging context for reedgrass.
Single place to control all output: screen + file, with flush.
"""
import json
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.text import Text

_PREFIX_STYLES = (
    ("[ERROR]", "bold red"),
    ("[WARNING]", "yellow"),
    ("[INFO]", "cyan"),
)
_STEP_RE = re.compile(r"^\[(?P<marker>[-+*!])\] ")
_STEP_STYLES = {"-": "grey50", "+": "green", "*": "bold green", "!": "red"}


class ReedgrassLogger:
    """Minimal logger: print to screen + file, always flush"""

    def __init__(self, log_file: Optional[Path] = None, debug: bool = False, verbose: bool = False):
        self.log_file = log_file
        self._file_handle = None
        self._start_time = datetime.now()
        self.debug_mode = debug
        self.verbose_mode = verbose or debug
        self._console = Console(highlight=False)
        self._status_active = False
        self._rate_limit_note_trackers: set[str] = set()

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            self._file_handle = open(log_file, 'w', buffering=1, encoding='utf-8')  # Line buffered, UTF-8

        from reedgrass.__version__ import __version__

        self.log(f"({self._start_time.strftime('%H:%M:%S')}  Started reedgrass {__version__})")

    def _screen_text(self, output: str) -> Text:
        """Style known prefixes without interpreting brackets as markup."""
        text = Text(output)
        for prefix, style in _PREFIX_STYLES:
            index = output.find(prefix)
            if index != -1:
                text.stylize(style, index, index + len(prefix))
        step = _STEP_RE.match(output)
        if step:
            text.stylize(_STEP_STYLES[step.group("marker")], 0, step.end() - 1)
        return text

    def status(self, msg: str):
        """Inline progress line, overwritten by the next status or log line"""
        print(f"\r{msg}", end="", flush=True)
        self._status_active = True

    def log(self, msg: str, prefix: str = ""):
        """Log to screen and file"""
        output = f"{prefix}{msg}" if prefix else msg

        if self._status_active:
            print("\r\033[K", end="", flush=True)
            self._status_active = False
        self._console.print(self._screen_text(output))

        if self._file_handle:
            self._file_handle.write(output + "\n")
            self._file_handle.flush()
            os.fsync(self._file_handle.fileno())

    def info(self, msg: str):
        """Info message"""
        self.log(msg)

    def warning(self, msg: str):
        """Warning message"""
        self.log(msg, "[WARNING] ")

    def error(self, msg: str):
        """Error message"""
        self.log(msg, "[ERROR] ")

    def verbose(self, msg: str):
        """Shown with --verbose or --debug"""
        if self.verbose_mode:
            self.log(msg, "[VERBOSE] ")

    def debug(self, msg: str):
        """Debug message (only shown in debug mode)"""
        if self.debug_mode:
            timestamp = datetime.now().strftime('%H:%M:%S.%f')[:-3]
            self.log(msg, f"[{timestamp}] [DEBUG] ")

    def command(self, command: str, args: list[str]):
        """Log an external tool invocation (verbose mode only)"""
        self.verbose(f"exec: {command} {' '.join(args)}")

    def tool_output(self, pid: int | None, line: str, stderr: bool = False):
        """Echo one line of a child process' output"""
        marker = "!!" if stderr else ">>"
        self.log(line.rstrip("\n"), f"{marker} [{pid}] ")

    def api_wait(self, tracker: str, seconds: float):
        """Log API rate limiting wait"""
        _ = seconds
        tracker_key = tracker.upper()
        if tracker_key in self._rate_limit_note_trackers:
            return
        self._rate_limit_note_trackers.add(tracker_key)
        self.log(
            f"API rate limiting active for {tracker_key}; request pacing is enabled.",
            "[INFO] ",
        )

    def api_wait_debug(self, tracker: str, seconds: float):
        """Log API wait details (debug mode only)."""
        self.debug(f"Rate limiting detail: waiting {seconds:.3f}s before next {tracker} API call")

    def api_retry(self, tracker: str, attempt: int, max_attempts: int, delay: int):
        """Log API retry"""
        self.log(f"{tracker} server timeout. Retrying in {delay}s... (attempt {attempt}/{max_attempts})", "[WARNING] ")

    def api_failed(self, tracker: str, max_attempts: int):
        """Log API failure"""
        self.log(f"{tracker} server not responding after {max_attempts} attempts. Aborting.", "[ERROR] ")

    def api_request(self, method: str, url: str, params: dict):
        """Log API request (debug mode only)"""
        if self.debug_mode:
            timestamp = datetime.now().strftime('%H:%M:%S.%f')[:-3]
            self.log(f"API Request: {method} {url}", f"[{timestamp}] ")
            if params:
                self.log(f"  Params: {json.dumps(params, indent=2, default=str)}", f"[{timestamp}] ")

    def api_response(self, status: int, data: dict, elapsed_ms: float):
        """Log API response (debug mode only)"""
        if self.debug_mode:
            timestamp = datetime.now().strftime('%H:%M:%S.%f')[:-3]
            self.log(f"API Response ({elapsed_ms:.0f}ms): Status {status}", f"[{timestamp}] ")
            if data:
                # Truncate large responses
                data_str = json.dumps(data, indent=2)
                if len(data_str) > 5000:
                    data_str = data_str[:5000] + "\n  ... (truncated)"
                self.log(f"  Data: {data_str}", f"[{timestamp}] ")

    def close(self):
        """Close file handle with goodbye message"""
        if self._file_handle:
            end_time = datetime.now()
            elapsed = end_time - self._start_time
            self.log(f"({end_time.strftime('%H:%M:%S')}  Ended session, elapsed {elapsed.total_seconds():.1f}s)")
            self._file_handle.close()
            self._file_handle = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


# Global instance (set by the CLI)
_logger: Optional[ReedgrassLogger] = None

def set_logger(logger: ReedgrassLogger):
    """Set global logger instance"""
    global _logger
    _logger = logger

def get_logger() -> ReedgrassLogger:
    """Get global logger instance"""
    global _logger
    if _logger is None:
        # Fallback: create stdout-only logger
        _logger = ReedgrassLogger()
    return _logger

# Convenience functions
def log(msg: str):
    get_logger().log(msg)

def info(msg: str):
    get_logger().info(msg)

def warning(msg: str):
    get_logger().warning(msg)

def error(msg: str):
    get_logger().error(msg)

def verbose(msg: str):
    get_logger().verbose(msg)

def debug(msg: str):
    get_logger().debug(msg)

def status(msg: str):
    get_logger().status(msg)
