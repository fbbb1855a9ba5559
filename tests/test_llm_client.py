import json

import httpx
import pytest
import respx
from httpx import Response

from app.llm import ChatClient


@pytest.mark.asyncio
async def test_chat_completion_payload_shape():
    client = ChatClient("http://llm.test/v1/", "secret")
    captured = {}
    try:
        with respx.mock(assert_all_called=True) as respx_mock:
            def handler(request):
                captured["json"] = json.loads(request.content.decode("utf-8"))
                return Response(200, json={"choices": [{"message": {"content": "ok"}}]})

            respx_mock.post("http://llm.test/v1/chat/completions").mock(side_effect=handler)
            resp = await client.chat_completion(
                model="test-model",
                messages=[
                    {"role": "system", "content": "sys"},
                    {"role": "user", "content": "hi"},
                    {"role": "user", "content": "   "},
                    {"role": "tool", "content": "dropped"},
                ],
                temperature=0.5,
                response_format={"type": "json_object"},
            )
            assert resp["choices"][0]["message"]["content"] == "ok"
    finally:
        await client.close()
    payload = captured["json"]
    assert payload["model"] == "test-model"
    assert payload["temperature"] == 0.5
    assert payload["stream"] is False
    assert payload["response_format"] == {"type": "json_object"}
    assert [m["role"] for m in payload["messages"]] == ["system", "user"]


@pytest.mark.asyncio
async def test_chat_completion_requires_messages():
    client = ChatClient("http://llm.test/v1", "secret")
    try:
        with pytest.raises(ValueError):
            await client.chat_completion(model="test-model", messages=[{"role": "user", "content": ""}])
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_http_error_carries_upstream_detail():
    client = ChatClient("http://llm.test/v1", "bad-key")
    try:
        with respx.mock(assert_all_called=True) as respx_mock:
            respx_mock.post("http://llm.test/v1/chat/completions").mock(
                return_value=Response(401, json={"error": "invalid api key"})
            )
            with pytest.raises(httpx.HTTPStatusError) as excinfo:
                await client.complete_text(model="m", messages=[{"role": "user", "content": "hi"}])
    finally:
        await client.close()
    assert "invalid api key" in str(excinfo.value)
    assert excinfo.value.response.status_code == 401


@pytest.mark.asyncio
async def test_complete_text_rejects_missing_content():
    client = ChatClient("http://llm.test/v1", "secret")
    try:
        with respx.mock(assert_all_called=True) as respx_mock:
            respx_mock.post("http://llm.test/v1/chat/completions").mock(
                return_value=Response(200, json={"choices": [{"message": {"content": None}}]})
            )
            with pytest.raises(ValueError):
                await client.complete_text(model="m", messages=[{"role": "user", "content": "hi"}])
    finally:
        await client.close()
