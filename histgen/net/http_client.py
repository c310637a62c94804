"""
HTTP access for manifests and artifacts.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiohttp

from ..cache.hash_function import HashFunction
from ..config.global_config_loader import HttpConfig
from ..core.decorators import async_retry
from ..core.exceptions import DownloadError, IntegrityError


NO_CACHE_HEADERS = {
    "Cache-Control": "no-store,max-age=0,no-cache",
    "Expires": "0",
    "Pragma": "no-cache",
}


class TransientHttpError(Exception):
    """Non-200 response worth retrying"""

    def __init__(self, url: str, status: int):
        self.url = url
        self.status = status
        super().__init__(f"HTTP {status} for {url}")


RETRYABLE = (aiohttp.ClientError, asyncio.TimeoutError, TransientHttpError)


class HttpClient:
    """
    aiohttp based client with bounded exponential-backoff retries.

    Use as an async context manager; the session lives for one run.
    """

    def __init__(self, config: HttpConfig):
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None
        self.logger = logging.getLogger(__name__)

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def open(self):
        if self._session is None:
            # Per socket operation, never per download
            timeout = aiohttp.ClientTimeout(
                total=None,
                sock_connect=self.config.connect_timeout,
                sock_read=self.config.read_timeout
            )
            self._session = aiohttp.ClientSession(timeout=timeout, headers=NO_CACHE_HEADERS)

    async def close(self):
        if self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HttpClient used outside of its context")
        return self._session

    @async_retry(retry_on=RETRYABLE)
    async def _fetch_bytes(self, url: str, method: str = "GET", headers: Optional[Dict[str, str]] = None) -> bytes:
        async with self.session.request(method, url, headers=headers) as response:
            if response.status not in (200, 201):
                raise TransientHttpError(url, response.status)
            return await response.read()

    @async_retry(retry_on=RETRYABLE)
    async def _fetch_to_file(self, url: str, target: Path) -> None:
        try:
            async with self.session.get(url) as response:
                if response.status != 200:
                    raise TransientHttpError(url, response.status)
                with open(target, 'wb') as f:
                    async for chunk in response.content.iter_chunked(64 * 1024):
                        f.write(chunk)
        except RETRYABLE:
            if target.exists():
                target.unlink()
            raise

    async def get_json(self, url: str) -> Any:
        """
        Fetch and decode a JSON document.

        Raises:
            DownloadError: If all attempts fail
        """
        return await self.request_json("GET", url)

    async def request_json(self, method: str, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        """
        Send a request and decode its JSON response.

        Args:
            method: HTTP method
            url: Target URL
            headers: Extra request headers

        Raises:
            DownloadError: If all attempts fail
        """
        self.logger.debug(f"{method} {url}")
        try:
            data = await self._fetch_bytes(
                url,
                method,
                headers,
                _max_retries=self.config.max_retries,
                _delay=self.config.retry_delay
            )
        except RETRYABLE as e:
            raise DownloadError(
                f"Failed to fetch {url} after {self.config.max_retries} attempts: {e}"
            ) from e
        return json.loads(data.decode('utf-8'))

    async def download_file(self, target: Path, url: str, sha1: Optional[str] = None) -> Path:
        """
        Download ``url`` to ``target`` and verify its SHA-1.

        Args:
            target: Destination file
            url: Source URL
            sha1: Expected SHA-1, or None to skip verification

        Returns:
            The target path

        Raises:
            DownloadError: If all attempts fail
            IntegrityError: If the content hash differs; the file is deleted first
        """
        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"  Downloading {url}")

        try:
            await self._fetch_to_file(
                url,
                target,
                _max_retries=self.config.max_retries,
                _delay=self.config.retry_delay
            )
        except RETRYABLE as e:
            raise DownloadError(
                f"Failed to download {url} after {self.config.max_retries} attempts: {e}"
            ) from e

        if sha1 is not None:
            actual = HashFunction.SHA1.hash_file(target)
            if actual != sha1.lower():
                target.unlink()
                raise IntegrityError(url, sha1, actual)

        return target
