from __future__ import annotations

import asyncio

import httpx
import pytest

from hydrodem.acquisition.download import DownloadQueue
from hydrodem.errors import DownloadError


def test_queue_fetches_in_submission_order(tmp_path) -> None:
    order: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        order.append(request.url.path)
        await asyncio.sleep(0.01 if request.url.path.endswith("a") else 0)
        return httpx.Response(200, content=request.url.path.encode())

    async def run() -> list:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            queue = DownloadQueue(tmp_path / "downloads", client)
            paths = await asyncio.gather(
                queue.fetch("https://dl.test/a", "a.zip"),
                queue.fetch("https://dl.test/b", "b.zip"),
                queue.fetch("https://dl.test/c", "c.zip"),
            )
            await queue.close()
            return paths

    paths = asyncio.run(run())

    assert order == ["/a", "/b", "/c"]
    assert [path.name for path in paths] == ["a.zip", "b.zip", "c.zip"]
    assert paths[1].read_bytes() == b"/b"


def test_failed_fetch_removes_partial_file(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/bad":
            return httpx.Response(500)
        return httpx.Response(200, content=b"ok")

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            queue = DownloadQueue(tmp_path, client)
            bad = queue.enqueue("https://dl.test/bad", "bad.zip")
            good = queue.enqueue("https://dl.test/good", "good.zip")
            results = await asyncio.gather(bad, good, return_exceptions=True)
            await queue.close()
            return results

    bad, good = asyncio.run(run())

    assert isinstance(bad, DownloadError)
    assert "status code 500" in str(bad)
    assert not (tmp_path / "bad.zip").exists()
    assert good.read_bytes() == b"ok"


def test_transport_error_becomes_download_error(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    async def run() -> None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            queue = DownloadQueue(tmp_path, client)
            try:
                await queue.fetch("https://dl.test/x", "x.zip")
            finally:
                await queue.close()

    with pytest.raises(DownloadError, match="x.zip"):
        asyncio.run(run())
    assert not (tmp_path / "x.zip").exists()


def test_unexpected_failure_does_not_stop_the_queue(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/broken":
            raise RuntimeError("transport exploded")
        return httpx.Response(200, content=b"ok")

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            queue = DownloadQueue(tmp_path, client)
            results = await asyncio.wait_for(
                asyncio.gather(
                    queue.fetch("https://dl.test/broken", "broken.zip"),
                    queue.fetch("https://dl.test/fine", "fine.zip"),
                    return_exceptions=True,
                ),
                timeout=5,
            )
            await queue.close()
            return results

    broken, fine = asyncio.run(run())

    assert isinstance(broken, DownloadError)
    assert isinstance(broken.__cause__, RuntimeError)
    assert not (tmp_path / "broken.zip").exists()
    assert fine.read_bytes() == b"ok"


def test_unusable_directory_fails_every_fetch(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file", encoding="utf-8")
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, content=b"ok")

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            queue = DownloadQueue(blocker / "downloads", client)
            results = await asyncio.gather(
                queue.fetch("https://dl.test/a", "a.zip"),
                queue.fetch("https://dl.test/b", "b.zip"),
                return_exceptions=True,
            )
            await queue.close()
            return results

    results = asyncio.run(run())

    assert all(isinstance(result, DownloadError) for result in results)
    assert all("unavailable" in str(result) for result in results)
    assert requests == []


def test_close_without_fetches_is_a_no_op(tmp_path) -> None:
    async def run() -> None:
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: None)) as client:
            queue = DownloadQueue(tmp_path, client)
            await queue.close()
            await queue.close()

    asyncio.run(run())
