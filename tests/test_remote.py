import asyncio
import json

import httpx
import pytest

from errors import RemoteError
from modes import MODE_PROFILES, Mode
from remote import GeminiClient, extract_inline_image


def _client(handler, api_key="test-key") -> GeminiClient:
    return GeminiClient(api_key, base_url="https://gemini.test/v1beta", transport=httpx.MockTransport(handler))


def _candidates(*parts) -> dict:
    return {"candidates": [{"content": {"parts": list(parts)}}]}


def test_missing_key_short_circuits_without_network(make_image) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    with pytest.raises(RemoteError) as exc:
        asyncio.run(_client(handler, api_key="").generate([make_image()], "tryOn"))

    assert exc.value.reason == "missing_key"
    assert calls == []


def test_generate_returns_first_inline_image(make_image) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_candidates(
            {"text": "Here you go"},
            {"inlineData": {"mimeType": "image/jpeg", "data": "QUJD"}},
            {"inlineData": {"mimeType": "image/png", "data": "WFla"}},
        ))

    images = [f"data:image/png;base64,{make_image()}", make_image(fmt="JPEG")]
    generated = asyncio.run(_client(handler).generate(images, "bgSwap"))

    assert generated.data == "QUJD"
    assert generated.mime_type == "image/jpeg"
    assert generated.text == "Here you go"
    assert seen["url"].endswith(":generateContent")
    assert seen["key"] == "test-key"
    parts = seen["body"]["contents"][0]["parts"]
    assert MODE_PROFILES[Mode.BG_SWAP].instruction in parts[0]["text"]
    assert [p["inlineData"]["mimeType"] for p in parts[1:]] == ["image/png", "image/jpeg"]
    assert not parts[1]["inlineData"]["data"].startswith("data:")


def test_unknown_mode_uses_try_on_instruction(make_image) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_candidates({"inlineData": {"data": "QUJD"}}))

    asyncio.run(_client(handler).generate([make_image()], "mystery"))

    assert MODE_PROFILES[Mode.TRY_ON].instruction in seen["body"]["contents"][0]["parts"][0]["text"]


def test_non_success_status_is_remote_error(make_image) -> None:
    with pytest.raises(RemoteError) as exc:
        asyncio.run(_client(lambda r: httpx.Response(503, text="busy")).generate([make_image()], "tryOn"))

    assert exc.value.reason == "status"
    assert exc.value.status_code == 503


def test_unparsable_body_is_remote_error(make_image) -> None:
    with pytest.raises(RemoteError) as exc:
        asyncio.run(_client(lambda r: httpx.Response(200, text="<html>")).generate([make_image()], "tryOn"))

    assert exc.value.reason == "parse"


def test_text_only_response_keeps_description(make_image) -> None:
    body = _candidates({"text": "A navy blazer over a white tee."})

    with pytest.raises(RemoteError) as exc:
        asyncio.run(_client(lambda r: httpx.Response(200, json=body)).generate([make_image()], "tryOn"))

    assert exc.value.reason == "no_image"
    assert exc.value.description == "A navy blazer over a white tee."


def test_transport_failure_is_remote_error(make_image) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteError) as exc:
        asyncio.run(_client(handler).generate([make_image()], "tryOn"))

    assert exc.value.reason == "transport"


def test_describe_uses_text_model(make_image) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(200, json=_candidates({"text": "Soft pastel layers."}))

    client = _client(handler)
    text = asyncio.run(client.describe([make_image()], "collage"))

    assert text == "Soft pastel layers."
    assert f"/models/{client.text_model}:" in seen["url"]


def test_extract_inline_image_tolerates_odd_shapes() -> None:
    assert extract_inline_image(None) is None
    assert extract_inline_image({"candidates": "nope"}) is None
    assert extract_inline_image({"candidates": [{"content": {"parts": [{"inlineData": {}}]}}]}) is None
    found = extract_inline_image({"candidates": [{}, {"content": {"parts": [{"inline_data": {"data": "QQ=="}}]}}]})
    assert found is not None and found.data == "QQ=="
