"""Process-wide FIFO download queue."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from hydrodem.errors import DownloadError

LOGGER = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass
class _QueueItem:
    url: str
    filename: str
    future: asyncio.Future[Path] = field(repr=False)


class DownloadQueue:
    """Serialize fetches strictly in submission order.

    A single worker drains the queue, so the remote catalogue only ever sees
    one transfer at a time. The download directory is created once, before the
    first fetch; if that fails every queued fetch fails with the same error.
    """

    def __init__(self, directory: Path, client: httpx.AsyncClient) -> None:
        self.directory = Path(directory)
        self.client = client
        self._queue: asyncio.Queue[_QueueItem | None] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._directory_error: OSError | None = None
        self._directory_checked = False

    def path_for(self, filename: str) -> Path:
        """Return where a fetched file is written."""
        return self.directory / filename

    def ensure_directory(self) -> Path:
        """Create the download directory on first use and return it."""
        if not self._directory_checked:
            self._directory_checked = True
            if self.directory.is_dir():
                LOGGER.debug("Download directory found at %s.", self.directory)
            else:
                LOGGER.info("No download directory exists; creating %s.", self.directory)
                try:
                    self.directory.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    LOGGER.error("Could not make download directory %s: %s", self.directory, exc)
                    self._directory_error = exc
        if self._directory_error is not None:
            raise DownloadError(
                f"Download directory {self.directory} is unavailable: {self._directory_error}"
            )
        return self.directory

    def enqueue(self, url: str, filename: str) -> asyncio.Future[Path]:
        """Queue a fetch and return a future resolving to the written path."""
        future: asyncio.Future[Path] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_QueueItem(url, filename, future))
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain())
        return future

    async def fetch(self, url: str, filename: str) -> Path:
        """Queue a fetch and wait for the written path."""
        return await self.enqueue(url, filename)

    async def close(self) -> None:
        """Let queued fetches finish, then stop the worker."""
        if self._worker is not None and not self._worker.done():
            self._queue.put_nowait(None)
            await self._worker
        self._worker = None

    async def _drain(self) -> None:
        """Fetch queued items one at a time until the stop marker arrives."""
        while True:
            item = await self._queue.get()
            if item is None:
                return
            try:
                path = await self._fetch_to_file(item)
            except DownloadError as exc:
                self._fail(item, exc)
            except Exception as exc:
                LOGGER.exception("Unexpected failure fetching %s.", item.filename)
                error = DownloadError(f"Fetching {item.filename} failed: {exc}")
                error.__cause__ = exc
                self._fail(item, error)
            else:
                if not item.future.done():
                    item.future.set_result(path)

    @staticmethod
    def _fail(item: _QueueItem, error: DownloadError) -> None:
        if not item.future.done():
            item.future.set_exception(error)

    async def _fetch_to_file(self, item: _QueueItem) -> Path:
        """Stream one item to disk, removing the partial file on any failure."""
        self.ensure_directory()
        target = self.path_for(item.filename)
        LOGGER.info("Downloading %s...", item.filename)
        try:
            async with self.client.stream("GET", item.url) as response:
                if response.status_code != 200:
                    raise DownloadError(
                        f"Fetching {item.filename} returned status code {response.status_code}."
                    )
                with target.open("wb") as handle:
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        handle.write(chunk)
        except Exception as exc:
            target.unlink(missing_ok=True)
            LOGGER.error("An error occurred downloading %s; file deleted.", item.filename)
            if isinstance(exc, DownloadError):
                raise
            raise DownloadError(f"Fetching {item.filename} failed: {exc}") from exc
        LOGGER.info("Finished downloading %s.", item.filename)
        return target
