"""Gazelle JSON API adapter: the reads the pipeline needs plus the upload form."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, TypeVar

import aiohttp

from reedgrass import logger
from reedgrass.__version__ import __version__
from reedgrass.config import TrackerConfig
from reedgrass.rate_limits import (
    GAZELLE_MIN_INTERVAL_SECONDS,
    GAZELLE_WAIT_LOG_THRESHOLD_SECONDS,
    enforce_gazelle_min_interval,
)
from reedgrass.tracker.resilience import RETRYABLE_HTTP_STATUSES, response_payload
from reedgrass.tracker.types import TorrentQuery
from reedgrass.tracker_profile import resolve_tracker_profile

DEFAULT_USER_AGENT = f"reedgrass/{__version__}"
TORRENT_CONTENT_TYPE = "application/x-bittorrent"
_T = TypeVar("_T")


def build_upload_form(fields: Mapping[str, Any], files: Mapping[str, tuple[str, bytes]]) -> aiohttp.FormData:
    """Encode upload fields the way the Gazelle upload form expects.

    Empty and false values are left out, lists become repeated ``name[]``
    fields and every file is attached as a ``.torrent`` part.
    """
    form = aiohttp.FormData()
    for name, value in fields.items():
        if value is None or value is False or value == "" or value == []:
            continue
        if isinstance(value, (list, tuple)):
            for element in value:
                form.add_field(f"{name}[]", str(element))
        elif value is True:
            form.add_field(name, "1")
        else:
            form.add_field(name, str(value))
    for name, (file_name, payload) in files.items():
        form.add_field(name, payload, filename=file_name, content_type=TORRENT_CONTENT_TYPE)
    return form


class GazelleServiceAdapter:
    """Gazelle API adapter for the transcode pipeline."""

    def __init__(
        self,
        tracker: TrackerConfig,
        timeout: int = 30,
        upload_timeout: int = 120,
        min_interval_seconds: float = GAZELLE_MIN_INTERVAL_SECONDS,
    ):
        if not tracker.api_key:
            raise ValueError("Gazelle tracker API key is required.")

        self.tracker = tracker
        self.timeout = timeout
        self.upload_timeout = upload_timeout
        self.base_url = tracker.url.rstrip("/")
        self._min_interval_seconds = max(0.0, float(min_interval_seconds))
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def get_index(self) -> Dict[str, Any]:
        """Index payload for the authenticated user (carries the passkey)."""
        data = await self._request({"action": "index"})
        return response_payload(data, "index")

    async def get_torrent(self, query: TorrentQuery) -> Dict[str, Any]:
        """Torrent plus its group, via ajax.php?action=torrent."""
        data = await self._request({"action": "torrent", **query.params()})
        return response_payload(data, f"torrent {query.describe()}")

    async def get_torrent_group(self, query: TorrentQuery) -> Dict[str, Any]:
        """Group plus all its torrents, via ajax.php?action=torrentgroup."""
        data = await self._request({"action": "torrentgroup", **query.params()})
        return response_payload(data, f"torrentgroup {query.describe()}")

    async def upload(
        self,
        fields: Mapping[str, Any],
        files: Mapping[str, tuple[str, bytes]],
    ) -> Dict[str, Any]:
        """POST ajax.php?action=upload once. Upload failures are never retried."""
        url = f"{self.base_url}/ajax.php"
        params = {"action": "upload"}
        logger.get_logger().api_request("POST", url, {**params, **dict(fields)})
        request_start = time.time()

        await self._enforce_interval()
        session = await self._ensure_session()
        form = build_upload_form(fields, files)
        timeout = aiohttp.ClientTimeout(total=self.upload_timeout)
        async with session.post(url, params=params, data=form, timeout=timeout) as response:
            if response.status >= 400:
                text = await response.text()
                raise aiohttp.ClientResponseError(
                    request_info=response.request_info,
                    history=response.history,
                    status=response.status,
                    message=text,
                    headers=response.headers,
                )
            data = await response.json()
            elapsed_ms = (time.time() - request_start) * 1000
            logger.get_logger().api_response(response.status, data, elapsed_ms)
        return response_payload(data, "upload")

    async def _request(self, params: Dict[str, Any]) -> Dict[str, Any]:
        status, data, elapsed_ms = await self._request_with_retries(
            params,
            lambda response: response.json(),
        )
        logger.get_logger().api_response(status, data, elapsed_ms)
        return data

    async def _request_with_retries(
        self,
        params: Dict[str, Any],
        parser: Callable[[aiohttp.ClientResponse], Awaitable[_T]],
    ) -> tuple[int, _T, float]:
        url = f"{self.base_url}/ajax.php"
        logger.get_logger().api_request("GET", url, params)
        max_retries = 3
        request_start = time.time()

        await self._enforce_interval()
        session = await self._ensure_session()
        for attempt in range(max_retries):
            try:
                async with session.get(url, params=params) as response:
                    if response.status >= 400:
                        text = await response.text()
                        exc = aiohttp.ClientResponseError(
                            request_info=response.request_info,
                            history=response.history,
                            status=response.status,
                            message=text,
                            headers=response.headers,
                        )
                        # Retry only transient server failures and explicit throttling.
                        if attempt < max_retries - 1 and response.status in RETRYABLE_HTTP_STATUSES:
                            delay = self._retry_delay_seconds(attempt=attempt, retry_after=response.headers.get("Retry-After"))
                            logger.get_logger().api_retry(self.tracker.name.upper(), attempt + 1, max_retries, delay)
                            await asyncio.sleep(delay)
                            continue
                        raise exc
                    data = await parser(response)
                    elapsed_ms = (time.time() - request_start) * 1000
                    return response.status, data, elapsed_ms
            except (asyncio.TimeoutError, aiohttp.ClientConnectionError, aiohttp.ServerTimeoutError):
                if attempt < max_retries - 1:
                    delay = 2 ** (attempt + 1)
                    logger.get_logger().api_retry(self.tracker.name.upper(), attempt + 1, max_retries, delay)
                    await asyncio.sleep(delay)
                else:
                    logger.get_logger().api_failed(self.tracker.name.upper(), max_retries)
                    raise
        raise RuntimeError("Unreachable retry exit")

    @staticmethod
    def _retry_delay_seconds(*, attempt: int, retry_after: str | None) -> int:
        if retry_after:
            try:
                value = int(float(retry_after))
            except (TypeError, ValueError):
                value = 0
            if value > 0:
                return value
        return 2 ** (attempt + 1)

    async def _enforce_interval(self) -> None:
        wait = await enforce_gazelle_min_interval(
            self.base_url,
            min_interval_seconds=self._min_interval_seconds,
            tracker_name=self.tracker.name,
        )
        log = logger.get_logger()
        log.api_wait_debug(self.tracker.name.upper(), wait)
        if wait > GAZELLE_WAIT_LOG_THRESHOLD_SECONDS:
            log.api_wait(self.tracker.name.upper(), wait)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        session = self._session
        if session is not None and not session.closed:
            return session

        async with self._session_lock:
            session = self._session
            if session is None or session.closed:
                timeout = aiohttp.ClientTimeout(total=self.timeout)
                self._session = aiohttp.ClientSession(
                    headers=self._get_headers(),
                    timeout=timeout,
                )
            return self._session

    def _get_headers(self) -> Dict[str, str]:
        auth = resolve_tracker_profile(self.tracker.name).authorization(self.tracker.api_key)
        return {"Authorization": auth, "User-Agent": DEFAULT_USER_AGENT}

    async def close(self) -> None:
        """Close any open connections."""
        async with self._session_lock:
            session = self._session
            self._session = None
        if session is not None and not session.closed:
            await session.close()
