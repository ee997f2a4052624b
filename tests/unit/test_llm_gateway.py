import json

import pytest
from pydantic import BaseModel

from config.llm import LlmRoute
from llm_gateway import LlmGatewayError, chat, chat_text


class Verdict(BaseModel):
    label: str


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = json.dumps(payload)

    def json(self):
        return self._payload


class FakeClient:
    def __init__(self, contents, status_code=200):
        self.contents = list(contents)
        self.status_code = status_code
        self.requests = []

    def post(self, url, *, json, headers, timeout):
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        content = self.contents.pop(0)
        return FakeResponse(self.status_code, {"choices": [{"message": {"content": content}}]})


def _route(**overrides) -> LlmRoute:
    data = dict(
        name="test",
        base_url="http://llm.local",
        endpoint="/v1/chat/completions",
        model="m",
        timeout_s=5,
        max_retries=1,
        temperature=0.2,
    )
    data.update(overrides)
    return LlmRoute(**data)


def test_chat_retries_until_valid():
    client = FakeClient(["not json", "```json\n{\"label\": \"ok\"}\n```"])
    result = chat([{"role": "user", "content": "hi"}], Verdict, cfg=_route(), client=client)
    assert result.label == "ok"
    assert len(client.requests) == 2
    assert client.requests[0]["json"]["temperature"] == 0.2
    assert client.requests[1]["json"]["messages"][-1]["content"].startswith("The previous reply failed validation.")


def test_chat_gives_up_after_retries():
    client = FakeClient(["nope", "still nope"])
    with pytest.raises(LlmGatewayError):
        chat([{"role": "user", "content": "hi"}], Verdict, cfg=_route(), client=client)


def test_chat_text_returns_stripped_content():
    client = FakeClient(["  Hey there.  "])
    text = chat_text([{"role": "user", "content": "hi"}], cfg=_route(enforce_json=False), client=client)
    assert text == "Hey there."
    assert client.requests[0]["json"]["messages"] == [{"role": "user", "content": "hi"}]


def test_chat_text_rejects_empty_and_error_status():
    with pytest.raises(LlmGatewayError):
        chat_text([{"role": "user", "content": "hi"}], cfg=_route(), client=FakeClient(["   "]))
    with pytest.raises(LlmGatewayError):
        chat_text([{"role": "user", "content": "hi"}], cfg=_route(), client=FakeClient(["x"], status_code=500))
