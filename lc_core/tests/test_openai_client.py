import json

import httpx

from lc_core.domain.models import ChatMessage
from lc_core.providers.openai_client import OpenAICompatibleClient


class SettingsStub:
    openai_api_key = "sk-test"
    openai_base_url = "https://api.example.com/v1"
    default_model = "gpt-4o-mini"
    connect_timeout = 30.0
    write_timeout = 30.0
    read_timeout = 120.0


class RecordingSink:
    def __init__(self):
        self.calls = []

    def on_delta(self, delta, done):
        self.calls.append((delta, done))


_REAL_CLIENT = httpx.Client

MESSAGES = [
    ChatMessage(role="system", content="sys"),
    ChatMessage(role="user", content="hi"),
]


def _use_transport(monkeypatch, handler):
    """让被测代码里的 httpx.Client 走 MockTransport。"""

    def factory(*a, **kw):
        return _REAL_CLIENT(*a, transport=httpx.MockTransport(handler), **kw)

    monkeypatch.setattr("httpx.Client", factory)


def _sse(*payloads):
    lines = []
    for p in payloads:
        data = p if isinstance(p, str) else json.dumps(p)
        lines.append(f"data: {data}\n\n")
    return "".join(lines).encode("utf-8")


def _delta(text):
    return {"choices": [{"index": 0, "delta": {"content": text}}]}


def test_chat_basic(monkeypatch):
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["headers"] = request.headers
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "  ok \n"}}]})

    _use_transport(monkeypatch, handler)
    res = OpenAICompatibleClient(SettingsStub()).chat(MESSAGES)

    assert res.success
    assert res.full_response == "ok"
    assert res.error is None
    assert captured["url"] == "https://api.example.com/v1/chat/completions"
    assert captured["headers"]["Authorization"] == "Bearer sk-test"
    assert captured["headers"]["Content-Type"] == "application/json"
    assert captured["body"] == {
        "model": "gpt-4o-mini",
        "messages": [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}],
    }


def test_chat_model_override(monkeypatch):
    captured = {}

    def handler(request):
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "x"}}]})

    _use_transport(monkeypatch, handler)
    OpenAICompatibleClient(SettingsStub()).chat(MESSAGES, model="other-model")
    assert captured["body"]["model"] == "other-model"
    assert "stream" not in captured["body"]


def test_chat_http_error_includes_status_and_body(monkeypatch):
    _use_transport(monkeypatch, lambda request: httpx.Response(401, text='{"error":"bad key"}'))
    res = OpenAICompatibleClient(SettingsStub()).chat(MESSAGES)
    assert not res.success
    assert "401" in res.error
    assert "bad key" in res.error


def test_chat_invalid_json(monkeypatch):
    _use_transport(monkeypatch, lambda request: httpx.Response(200, text="<html>oops</html>"))
    res = OpenAICompatibleClient(SettingsStub()).chat(MESSAGES)
    assert not res.success
    assert res.error.startswith("Invalid API response format")


def test_chat_missing_content(monkeypatch):
    _use_transport(monkeypatch, lambda request: httpx.Response(200, json={"choices": []}))
    res = OpenAICompatibleClient(SettingsStub()).chat(MESSAGES)
    assert not res.success
    assert "choices[0].message.content" in res.error


def test_chat_permanent_redirect(monkeypatch):
    def handler(request):
        return httpx.Response(308, headers={"Location": "https://api.example.com/v1/chat/completions/"})

    _use_transport(monkeypatch, handler)
    res = OpenAICompatibleClient(SettingsStub()).chat(MESSAGES)
    assert not res.success
    assert "308" in res.error
    assert "openai_base_url" in res.error
    assert "https://api.example.com/v1/" in res.error


def test_chat_network_error(monkeypatch):
    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, *a, **kw):
            raise httpx.ConnectError("connection refused")

    monkeypatch.setattr("httpx.Client", Client)
    res = OpenAICompatibleClient(SettingsStub()).chat(MESSAGES)
    assert not res.success
    assert "HTTP request failed" in res.error
    assert "connection refused" in res.error


def test_invalid_base_url_never_sends(monkeypatch):
    class Client:
        def __init__(self, *a, **kw):
            raise AssertionError("client should not be created")

    class BadSettings(SettingsStub):
        openai_base_url = "api.example.com/v1"

    monkeypatch.setattr("httpx.Client", Client)
    sink = RecordingSink()
    res = OpenAICompatibleClient(BadSettings()).chat_stream(MESSAGES, sink)
    assert not res.success
    assert res.error.startswith("Invalid base URL")
    assert sink.calls == []


def test_client_timeouts_and_redirect_policy(monkeypatch):
    captured = {}

    class Resp:
        status_code = 200
        headers = {}
        text = ""

        def json(self):
            return {"choices": [{"message": {"content": "ok"}}]}

    class Client:
        def __init__(self, *a, **kw):
            captured.update(kw)

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, *a, **kw):
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)
    OpenAICompatibleClient(SettingsStub()).chat(MESSAGES)
    timeout = captured["timeout"]
    assert timeout.connect == 30.0
    assert timeout.write == 30.0
    assert timeout.read == 120.0
    assert captured["follow_redirects"] is False


def test_chat_stream_example(monkeypatch):
    captured = {}
    body = (
        b'data: {"choices":[{"delta":{"content":"Hi"}}]}\n\n'
        b'data: {"choices":[{"delta":{"content":" there"}}]}\n\n'
        b"data: [DONE]\n"
    )

    def handler(request):
        captured["headers"] = request.headers
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, content=body, headers={"Content-Type": "text/event-stream"})

    _use_transport(monkeypatch, handler)
    sink = RecordingSink()
    res = OpenAICompatibleClient(SettingsStub()).chat_stream(MESSAGES, sink)

    assert res.success
    assert res.full_response == "Hi there"
    assert sink.calls == [("Hi", False), (" there", False), ("", True)]
    assert captured["body"]["stream"] is True
    assert captured["headers"]["Accept"] == "text/event-stream"


def test_chat_stream_chunk_boundaries(monkeypatch):
    raw = _sse(_delta("Hel"), _delta("lo wor"), _delta("ld"), "[DONE]")
    # 按任意字节位置切开，行的拼接由 httpx 负责
    chunks = [raw[i:i + 7] for i in range(0, len(raw), 7)]

    _use_transport(monkeypatch, lambda request: httpx.Response(200, content=iter(chunks)))
    sink = RecordingSink()
    res = OpenAICompatibleClient(SettingsStub()).chat_stream(MESSAGES, sink)
    assert res.full_response == "Hello world"
    assert [d for d, done in sink.calls if not done] == ["Hel", "lo wor", "ld"]


def test_stream_matches_non_stream_for_any_framing(monkeypatch):
    content = "Use ls -la to list files."
    _use_transport(monkeypatch, lambda request: httpx.Response(200, json={"choices": [{"message": {"content": content}}]}))
    non_stream = OpenAICompatibleClient(SettingsStub()).chat(MESSAGES).full_response

    for framing in (["Use ls -la to list files."], ["Use", " ls", " -la", " to list", " files."], list(content)):
        body = _sse(*[_delta(part) for part in framing], "[DONE]")
        _use_transport(monkeypatch, lambda request, body=body: httpx.Response(200, content=body))
        res = OpenAICompatibleClient(SettingsStub()).chat_stream(MESSAGES, RecordingSink())
        assert res.full_response == non_stream


def test_chat_stream_http_error(monkeypatch):
    _use_transport(monkeypatch, lambda request: httpx.Response(500, text="upstream exploded"))
    sink = RecordingSink()
    res = OpenAICompatibleClient(SettingsStub()).chat_stream(MESSAGES, sink)
    assert not res.success
    assert "500" in res.error
    assert "upstream exploded" in res.error
    assert sink.calls == []


def test_chat_stream_permanent_redirect(monkeypatch):
    class Settings308(SettingsStub):
        openai_base_url = "http://proxy.local/api"

    _use_transport(monkeypatch, lambda request: httpx.Response(308, headers={"Location": "http://proxy.local/api/"}))
    res = OpenAICompatibleClient(Settings308()).chat_stream(MESSAGES, RecordingSink())
    assert not res.success
    assert "Permanent Redirect" in res.error
    assert "http://proxy.local/api/" in res.error


def test_chat_stream_without_done_marker(monkeypatch):
    body = _sse(_delta("partial"), _delta(" answer"))
    _use_transport(monkeypatch, lambda request: httpx.Response(200, content=body))
    sink = RecordingSink()
    res = OpenAICompatibleClient(SettingsStub()).chat_stream(MESSAGES, sink)
    assert res.success
    assert res.full_response == "partial answer"
    assert all(not done for _, done in sink.calls)


def test_chat_stream_read_error_midway(monkeypatch):
    class FakeResponse:
        status_code = 200
        headers = {}

        def iter_lines(self):
            yield 'data: {"choices": [{"delta": {"content": "a"}}]}'
            raise httpx.ReadTimeout("read timed out")

    class StreamContext:
        def __enter__(self):
            return FakeResponse()

        def __exit__(self, *args):
            return False

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, *a, **kw):
            raise AssertionError("post should not be called in stream test")

        def stream(self, *a, **kw):
            return StreamContext()

    monkeypatch.setattr("httpx.Client", Client)
    sink = RecordingSink()
    res = OpenAICompatibleClient(SettingsStub()).chat_stream(MESSAGES, sink)
    assert not res.success
    assert "read timed out" in res.error
    assert sink.calls == [("a", False)]
