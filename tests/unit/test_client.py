"""
Tests for the briefing stream consumer.

The server side is an httpx.MockTransport whose response body is an async
generator, so chunk boundaries and mid-stream failures are under test control.
"""

import json

import httpx
import pytest

from briefdesk.client import BRIEFING_PATH, BriefingClient, progress_status
from briefdesk.domain.errors import BriefingRequestError

BASE_URL = "http://briefing.test"


def client_for(handler) -> BriefingClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BriefingClient(base_url=BASE_URL, client=http)


def streaming_handler(chunks, error: Exception | None = None, seen: dict | None = None):
    async def body():
        for chunk in chunks:
            yield chunk
        if error is not None:
            raise error

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
        return httpx.Response(200, headers={"content-type": "text/plain; charset=utf-8"}, content=body())

    return handler


@pytest.mark.asyncio
async def test_stream_accumulates_chunks_then_completes():
    seen: dict = {}
    client = client_for(streaming_handler([b"Brief", b"ing"], seen=seen))

    snapshots = [progress async for progress in client.stream("prompt")]

    assert seen["url"] == f"{BASE_URL}{BRIEFING_PATH}"
    assert seen["body"] == {"prompt": "prompt"}
    assert [snapshot.text for snapshot in snapshots] == ["Brief", "Briefing", "Briefing"]
    assert snapshots[-1].done
    assert snapshots[-1].status == "complete"
    assert snapshots[-1].chunks == 2
    assert not snapshots[-1].partial


@pytest.mark.asyncio
async def test_non_success_status_raises_with_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Missing prompt"})

    with pytest.raises(BriefingRequestError) as excinfo:
        async for _ in client_for(handler).stream("prompt"):
            pass

    assert excinfo.value.status_code == 400
    assert "Missing prompt" in excinfo.value.body


@pytest.mark.asyncio
async def test_broken_stream_after_text_is_partial():
    client = client_for(streaming_handler([b"Half a brief"], error=httpx.ReadError("connection reset")))

    snapshots = [progress async for progress in client.stream("prompt")]

    final = snapshots[-1]
    assert final.text == "Half a brief"
    assert final.partial
    assert final.done
    assert final.status == "partial"


@pytest.mark.asyncio
async def test_broken_stream_before_text_raises():
    client = client_for(streaming_handler([], error=httpx.ReadError("connection reset")))

    with pytest.raises(httpx.ReadError):
        async for _ in client.stream("prompt"):
            pass


@pytest.mark.asyncio
async def test_brief_builds_prompt_and_returns_final_snapshot():
    seen: dict = {}
    client = client_for(streaming_handler([b"Done."], seen=seen))

    final = await client.brief("EN", "https://x.test/doc", " Explain X ")

    assert seen["body"] == {"prompt": "LANG_MODE=EN\nURL=https://x.test/doc\n\nMISSION:\nExplain X"}
    assert final.text == "Done."
    assert final.status == "complete"


def test_progress_status_thresholds():
    assert progress_status(0) == "thinking"
    assert progress_status(150) == "searching"
    assert progress_status(300) == "generating"
