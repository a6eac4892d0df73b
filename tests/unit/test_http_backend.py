import json

import httpx
import pytest

from receipt_split.errors import NetworkUnavailable, NotFound, ServerRejected
from receipt_split.models import ParticipantCreate, SplitRequest
from receipt_split.sync.backend import HttpSplitBackend

SPLIT_JSON = {
    "id": "split-1",
    "receipt_id": "rcpt-1",
    "participants": [
        {"id": "7C9E6679-7425-40DE-944B-E07FC1F90AE7", "name": "Me", "color": "#3B82F6",
         "display_order": 0, "is_me": True},
    ],
    "assignments": [
        {"id": "a1", "transaction_id": "local-item-0",
         "participant_ids": ["7c9e6679-7425-40de-944b-e07fc1f90ae7"]},
    ],
}


def _backend(settings, handler):
    return HttpSplitBackend(settings=settings, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_existing_decodes_record_and_sends_token(settings):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=SPLIT_JSON)

    record = await _backend(settings, handler).fetch_existing("rcpt-1")

    assert seen == {"path": "/api/v1/expense-splits/receipt/rcpt-1", "auth": "Bearer test-token"}
    assert record.id == "split-1"
    assert record.participants[0].key == "7c9e6679-7425-40de-944b-e07fc1f90ae7"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(404, json={"detail": "Not found"}),
    httpx.Response(200, text="null"),
    httpx.Response(200, content=b""),
])
async def test_missing_split_is_none(settings, response):
    backend = _backend(settings, lambda request: response)
    assert await backend.fetch_existing("rcpt-1") is None


@pytest.mark.asyncio
async def test_save_posts_positional_payload(settings):
    captured = {}

    def handler(request):
        captured["method"] = request.method
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json=SPLIT_JSON)

    request = SplitRequest(
        receipt_id="rcpt-1",
        participants=[ParticipantCreate(name="Me", color_token="#3B82F6", is_self=True)],
    )
    record = await _backend(settings, handler).save(request)

    assert captured["method"] == "POST"
    assert captured["body"]["participants"][0]["is_me"] is True
    assert record.receipt_id == "rcpt-1"


@pytest.mark.asyncio
async def test_server_error_message_is_surfaced(settings):
    backend = _backend(settings, lambda request: httpx.Response(422, json={"error": "Unknown participant index"}))
    with pytest.raises(ServerRejected) as exc:
        await backend.save(SplitRequest(receipt_id="rcpt-1"))
    assert exc.value.reason == "Unknown participant index"
    assert exc.value.status_code == 422


@pytest.mark.asyncio
async def test_unauthorized(settings):
    backend = _backend(settings, lambda request: httpx.Response(401))
    with pytest.raises(ServerRejected, match="unauthorized"):
        await backend.fetch_split("split-1")


@pytest.mark.asyncio
async def test_not_found_on_direct_lookup(settings):
    backend = _backend(settings, lambda request: httpx.Response(404))
    with pytest.raises(NotFound):
        await backend.fetch_split("split-404")


@pytest.mark.asyncio
async def test_delete_split(settings):
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        return httpx.Response(204)

    assert await _backend(settings, handler).delete_split("split-1") is None
    assert seen == {"method": "DELETE", "path": "/api/v1/expense-splits/split-1"}


@pytest.mark.asyncio
async def test_deleting_missing_split_is_not_found(settings):
    backend = _backend(settings, lambda request: httpx.Response(404, json={"detail": "Not found"}))
    with pytest.raises(NotFound):
        await backend.delete_split("split-404")


@pytest.mark.asyncio
async def test_transport_failure_is_network_unavailable(settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkUnavailable):
        await _backend(settings, handler).fetch_existing("rcpt-1")


@pytest.mark.asyncio
async def test_malformed_record_is_rejected(settings):
    backend = _backend(settings, lambda request: httpx.Response(200, json={"unexpected": True}))
    with pytest.raises(ServerRejected):
        await backend.fetch_existing("rcpt-1")


@pytest.mark.asyncio
async def test_recent_friends(settings):
    seen = {}

    def handler(request):
        seen["limit"] = request.url.params.get("limit")
        return httpx.Response(200, json=[
            {"id": "f1", "name": "Dana Scully", "color": "#00CED1", "use_count": 3},
        ])

    backend = _backend(settings, handler)
    friends = await backend.fetch_recent_friends(limit=5)
    await backend.aclose()

    assert seen["limit"] == "5"
    assert friends[0].initials == "DS"
