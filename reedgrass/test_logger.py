from __future__ import annotations

import builtins

from rich.text import Text

import reedgrass.logger as reed_logger


def _quiet(monkeypatch, **kwargs) -> reed_logger.ReedgrassLogger:
    log = reed_logger.ReedgrassLogger(**kwargs)
    monkeypatch.setattr(log._console, "print", lambda *_args, **_kwargs: None)
    return log


def test_api_wait_debug_drops_when_debug_disabled(monkeypatch):
    log = reed_logger.ReedgrassLogger(debug=False)
    captured: list[tuple[str, str]] = []
    monkeypatch.setattr(log, "log", lambda msg, prefix="": captured.append((prefix, msg)))

    log.api_wait_debug("RED", 0.321)

    assert captured == []


def test_api_wait_logs_one_time_note(monkeypatch):
    log = reed_logger.ReedgrassLogger(debug=False)
    captured: list[tuple[str, str]] = []
    monkeypatch.setattr(log, "log", lambda msg, prefix="": captured.append((prefix, msg)))

    log.api_wait("red", 1.8)
    log.api_wait("RED", 2.2)

    assert captured == [("[INFO] ", "API rate limiting active for RED; request pacing is enabled.")]


def test_verbose_and_command_lines_need_verbose_mode(monkeypatch):
    quiet = reed_logger.ReedgrassLogger()
    loud = reed_logger.ReedgrassLogger(verbose=True)
    captured: list[tuple[str, str]] = []
    for log in (quiet, loud):
        monkeypatch.setattr(log, "log", lambda msg, prefix="": captured.append((prefix, msg)))

    quiet.command("sox", ["-G", "in.flac"])
    loud.command("sox", ["-G", "in.flac"])

    assert captured == [("[VERBOSE] ", "exec: sox -G in.flac")]


def test_debug_implies_verbose():
    assert reed_logger.ReedgrassLogger(debug=True).verbose_mode


def test_tool_output_marks_stream_and_pid(monkeypatch):
    log = reed_logger.ReedgrassLogger()
    captured: list[tuple[str, str]] = []
    monkeypatch.setattr(log, "log", lambda msg, prefix="": captured.append((prefix, msg)))

    log.tool_output(4242, "Processing 01.flac\n")
    log.tool_output(4242, "warning: clipped\n", stderr=True)

    assert captured == [(">> [4242] ", "Processing 01.flac"), ("!! [4242] ", "warning: clipped")]


def test_log_clears_inline_status_before_print(monkeypatch):
    captured_print: list[tuple[tuple[object, ...], dict]] = []
    captured_screen: list[object] = []
    monkeypatch.setattr(builtins, "print", lambda *args, **kwargs: captured_print.append((args, kwargs)))
    log = reed_logger.ReedgrassLogger(debug=False)
    monkeypatch.setattr(log._console, "print", lambda msg, **kwargs: captured_screen.append(msg))
    captured_print.clear()

    log.status("Copying artwork")
    log.info("Done")

    assert str(captured_print[0][0][0]).startswith("\rCopying artwork")
    assert str(captured_print[1][0][0]).startswith("\r")
    assert isinstance(captured_screen[0], Text)
    assert captured_screen[0].plain == "Done"


def test_screen_text_styles_prefixes_and_steps(monkeypatch):
    log = _quiet(monkeypatch)

    step = log._screen_text("[+] Built Album - WEB V0.torrent")
    failure = log._screen_text("[!] Required tags are not present!")
    warning = log._screen_text("[WARNING] Found 16-bit files")
    plain = log._screen_text("Album - WEB V0")

    assert any(span.style == "green" for span in step.spans)
    assert any(span.style == "red" for span in failure.spans)
    assert any(span.style == "yellow" for span in warning.spans)
    assert plain.spans == []


def test_screen_text_preserves_literal_brackets(monkeypatch):
    log = _quiet(monkeypatch)
    line = "[-] Transcoding [2019] [WEB] album"

    assert log._screen_text(line).plain == line


def test_log_writes_plain_text_to_file(tmp_path, monkeypatch):
    out = tmp_path / "logs" / "reedgrass.log"
    log = _quiet(monkeypatch, log_file=out)

    log.warning("Found 16-bit files, won't transcode to FLAC16:")
    log.close()

    text = out.read_text(encoding="utf-8")
    assert "[WARNING] Found 16-bit files, won't transcode to FLAC16:" in text
    assert "Ended session" in text
