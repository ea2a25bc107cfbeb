import httpx
import pytest

from mafc.domain.exceptions import ApiError, BusinessError, ConfigurationError, NetworkError, ProtocolError
from mafc.providers import create_provider
from mafc.providers.gemini_client import GeminiClient


class SettingsStub:
    http_timeout = None
    gemini_base_url = "https://generativelanguage.googleapis.com/v1beta"
    default_model = "gemini-2.5-flash"


def make_client_cls(resp=None, captured=None, error=None):
    class Client:
        def __init__(self, *a, **kw):
            if captured is not None:
                captured["client_kwargs"] = kw

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, **kw):
            if error is not None:
                raise error
            if captured is not None:
                captured["url"] = url
                captured.update(kw)
            return resp

    return Client


class Resp:
    def __init__(self, status_code=200, data=None, text="", reason_phrase="OK"):
        self.status_code = status_code
        self._data = data
        self.text = text
        self.reason_phrase = reason_phrase

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data


def ok_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_generate_basic(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", make_client_cls(Resp(data=ok_payload("你好")), captured))
    gc = GeminiClient("AIza-test-key", "gemini-2.5-flash", SettingsStub())

    assert gc.generate("hi", "be nice") == "你好"
    assert captured["url"] == (
        "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"
    )
    assert captured["params"] == {"key": "AIza-test-key"}
    body = captured["json"]
    assert body["contents"] == [{"role": "user", "parts": [{"text": "hi"}]}]
    assert body["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 2000}
    assert body["systemInstruction"] == {"parts": [{"text": "be nice"}]}
    assert captured["client_kwargs"]["timeout"] is None


def test_generate_without_system_instruction(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.Client", make_client_cls(Resp(data=ok_payload("ok")), captured))
    gc = GeminiClient("AIza-test-key", "gemini-2.5-pro", SettingsStub())
    gc.generate("hi")
    assert "systemInstruction" not in captured["json"]
    assert "gemini-2.5-pro:generateContent" in captured["url"]


@pytest.mark.parametrize("key", ["", "   ", None])
def test_empty_key_fails_before_request(monkeypatch, key):
    def boom(*a, **kw):
        raise AssertionError("no network call expected")

    monkeypatch.setattr("httpx.Client", boom)
    gc = GeminiClient(key, "gemini-2.5-flash", SettingsStub())
    with pytest.raises(ConfigurationError) as exc:
        gc.generate("hi")
    assert exc.value.code == "MISSING_API_KEY"


def test_non_success_status(monkeypatch):
    resp = Resp(status_code=403, text='{"error": "denied"}', reason_phrase="Forbidden")
    monkeypatch.setattr("httpx.Client", make_client_cls(resp))
    gc = GeminiClient("AIza-test-key", "gemini-2.5-flash", SettingsStub())
    with pytest.raises(ApiError) as exc:
        gc.generate("hi")
    assert exc.value.http_status == 403
    assert exc.value.extra["body"] == '{"error": "denied"}'
    assert "API Error 403" in exc.value.message


def test_no_candidates(monkeypatch):
    monkeypatch.setattr("httpx.Client", make_client_cls(Resp(data={"candidates": []})))
    gc = GeminiClient("AIza-test-key", "gemini-2.5-flash", SettingsStub())
    with pytest.raises(ProtocolError) as exc:
        gc.generate("hi")
    assert exc.value.message == "No candidates returned from API"


@pytest.mark.parametrize("candidate", [
    {"content": {"parts": [{"text": None}]}},
    {"content": {"parts": [{"text": 42}]}},
    {"content": {"parts": []}},
    {"finishReason": "SAFETY"},
])
def test_candidate_without_text(monkeypatch, candidate):
    monkeypatch.setattr("httpx.Client", make_client_cls(Resp(data={"candidates": [candidate]})))
    gc = GeminiClient("AIza-test-key", "gemini-2.5-flash", SettingsStub())
    with pytest.raises(ProtocolError) as exc:
        gc.generate("hi")
    assert exc.value.code == "EMPTY_CANDIDATE"


def test_invalid_json(monkeypatch):
    monkeypatch.setattr("httpx.Client", make_client_cls(Resp(data=None)))
    gc = GeminiClient("AIza-test-key", "gemini-2.5-flash", SettingsStub())
    with pytest.raises(ProtocolError):
        gc.generate("hi")


def test_network_error(monkeypatch):
    err = httpx.ConnectError("connection refused")
    monkeypatch.setattr("httpx.Client", make_client_cls(error=err))
    gc = GeminiClient("AIza-test-key", "gemini-2.5-flash", SettingsStub())
    with pytest.raises(NetworkError):
        gc.generate("hi")


def test_unexpected_error_is_normalized(monkeypatch):
    monkeypatch.setattr("httpx.Client", make_client_cls(error=RuntimeError("boom")))
    gc = GeminiClient("AIza-test-key", "gemini-2.5-flash", SettingsStub())
    with pytest.raises(BusinessError) as exc:
        gc.generate("hi")
    assert exc.value.code == "UNKNOWN_ERROR"


def test_create_provider():
    provider = create_provider("AIza-test-key", "gemini-2.5-pro")
    assert isinstance(provider, GeminiClient)
    assert provider.model == "gemini-2.5-pro"
