from __future__ import annotations

import pytest

from reedgrass import rate_limits


@pytest.fixture
def fake_clock(monkeypatch: pytest.MonkeyPatch) -> dict:
    rate_limits._reset_rate_limits_for_tests()
    clock = {"now": 100.0, "waits": []}

    async def _fake_sleep(delay: float) -> None:
        clock["waits"].append(delay)
        clock["now"] += delay

    monkeypatch.setattr(rate_limits.time, "monotonic", lambda: clock["now"])
    monkeypatch.setattr(rate_limits.asyncio, "sleep", _fake_sleep)
    return clock


@pytest.mark.asyncio
async def test_second_request_to_same_server_waits_min_interval(fake_clock) -> None:
    first = await rate_limits.enforce_gazelle_min_interval("https://redacted.sh/")
    second = await rate_limits.enforce_gazelle_min_interval("https://REDActed.sh")

    assert first == 0.0
    assert second == pytest.approx(rate_limits.GAZELLE_MIN_INTERVAL_SECONDS)
    assert fake_clock["waits"] == [pytest.approx(rate_limits.GAZELLE_MIN_INTERVAL_SECONDS)]


@pytest.mark.asyncio
async def test_partial_interval_only_waits_the_remainder(fake_clock) -> None:
    await rate_limits.enforce_gazelle_min_interval("https://redacted.sh")
    fake_clock["now"] += 1.5

    wait = await rate_limits.enforce_gazelle_min_interval("https://redacted.sh")

    assert wait == pytest.approx(0.5)


@pytest.mark.asyncio
async def test_servers_are_paced_independently(fake_clock) -> None:
    assert await rate_limits.enforce_gazelle_min_interval("https://redacted.sh") == 0.0
    assert await rate_limits.enforce_gazelle_min_interval("https://staging.redacted.sh") == 0.0
    assert fake_clock["waits"] == []


@pytest.mark.asyncio
async def test_red_request_window_holds_the_eleventh_call(fake_clock) -> None:
    for _ in range(10):
        await rate_limits.enforce_gazelle_min_interval(
            "https://redacted.sh", min_interval_seconds=0.0, tracker_name="RED"
        )
    eleventh = await rate_limits.enforce_gazelle_min_interval(
        "https://redacted.sh", min_interval_seconds=0.0, tracker_name="RED"
    )

    assert fake_clock["waits"] == [pytest.approx(rate_limits.GAZELLE_RATE_LIMIT_WINDOW_SECONDS)]
    assert eleventh == pytest.approx(rate_limits.GAZELLE_RATE_LIMIT_WINDOW_SECONDS)
