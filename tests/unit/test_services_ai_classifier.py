"""
Тесты AI классификатора.

Покрывает:
- Разбор ответа модели (основное и запасное правило)
- Формат запроса chat/completions
- Fail-open: HTTP ошибки, таймаут, сеть, битый JSON -> False
- Одна попытка на вызов (без повторов)
"""

import asyncio

import aiohttp
import pytest

from antiad_bot.services.ai_classifier import (
    IMAGE_POLICY_PROMPT,
    PROFILE_POLICY_PROMPT,
    TEXT_POLICY_PROMPT,
    ContentClassifier,
    parse_verdict,
)


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class DummyResponse:
    def __init__(self, status=200, payload=None, text="", json_error=None):
        self.status = status
        self._payload = payload
        self._text = text
        self._json_error = json_error

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def text(self):
        return self._text

    async def json(self, content_type="application/json"):
        if self._json_error is not None:
            raise self._json_error
        return self._payload


class DummySession:
    """Подмена aiohttp.ClientSession: запоминает запросы, отдаёт заготовленный ответ."""

    def __init__(self, response=None, post_error=None):
        self.response = response
        self.post_error = post_error
        self.requests = []
        self.timeout = None

    def __call__(self, timeout=None):
        self.timeout = timeout
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def post(self, url, json=None, headers=None):
        self.requests.append({"url": url, "json": json, "headers": headers})
        if self.post_error is not None:
            raise self.post_error
        return self.response


def make_classifier(session, **kwargs):
    return ContentClassifier(
        api_url="https://ai.example/v1/chat/completions",
        api_key="secret-key",
        session_factory=session,
        **kwargs,
    )


class TestParseVerdict:
    @pytest.mark.parametrize(
        "answer",
        ["VERDICT: YES", "Selling crypto. verdict: yes", "Reasoning...\nVERDICT: YES\n"],
    )
    def test_primary_marker(self, answer):
        assert parse_verdict(answer) is True

    @pytest.mark.parametrize("answer", ["VERDICT: NO", "Normal chat. VERDICT: NO", "", None])
    def test_no_violation(self, answer):
        assert parse_verdict(answer) is False

    def test_secondary_rule_yes_without_no(self):
        assert parse_verdict("Yes, this is spam") is True

    def test_secondary_rule_rejects_any_no_substring(self):
        # "NO" внутри "NOTHING" блокирует запасное правило
        assert parse_verdict("YES... nothing else") is False


class TestClassifyText:
    @pytest.mark.asyncio
    async def test_request_format(self):
        session = DummySession(DummyResponse(payload=_completion("VERDICT: NO")))
        classifier = make_classifier(session, model="test-model", timeout_seconds=5)

        result = await classifier.classify_text("hello", TEXT_POLICY_PROMPT)

        assert result is False
        assert len(session.requests) == 1
        request = session.requests[0]
        assert request["url"] == "https://ai.example/v1/chat/completions"
        assert request["headers"]["Authorization"] == "Bearer secret-key"
        assert request["json"] == {
            "model": "test-model",
            "messages": [
                {"role": "system", "content": TEXT_POLICY_PROMPT},
                {"role": "user", "content": "hello"},
            ],
            "temperature": 0.2,
        }
        assert session.timeout.total == 5

    @pytest.mark.asyncio
    async def test_violation(self):
        session = DummySession(DummyResponse(payload=_completion("Crypto selling. VERDICT: YES")))
        assert await make_classifier(session).classify_text("buy usdt", PROFILE_POLICY_PROMPT) is True
        assert session.requests[0]["json"]["messages"][0]["content"] == PROFILE_POLICY_PROMPT

    @pytest.mark.asyncio
    async def test_http_error_is_clean_without_retry(self):
        session = DummySession(DummyResponse(status=500, text="internal error"))
        assert await make_classifier(session).classify_text("buy usdt") is False
        assert len(session.requests) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_clean(self):
        session = DummySession(post_error=asyncio.TimeoutError())
        assert await make_classifier(session).classify_text("buy usdt") is False
        assert len(session.requests) == 1

    @pytest.mark.asyncio
    async def test_network_error_is_clean(self):
        session = DummySession(post_error=aiohttp.ClientConnectionError("refused"))
        assert await make_classifier(session).classify_text("buy usdt") is False

    @pytest.mark.asyncio
    async def test_invalid_json_is_clean(self):
        session = DummySession(DummyResponse(json_error=ValueError("not json")))
        assert await make_classifier(session).classify_text("buy usdt") is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"choices": []}, {"choices": [{"message": None}]}, ["x"]])
    async def test_malformed_payload_is_clean(self, payload):
        session = DummySession(DummyResponse(payload=payload))
        assert await make_classifier(session).classify_text("buy usdt") is False

    @pytest.mark.asyncio
    async def test_not_configured_skips_request(self):
        session = DummySession(DummyResponse(payload=_completion("VERDICT: YES")))
        classifier = ContentClassifier(api_url="", api_key="", session_factory=session)

        assert classifier.enabled is False
        assert await classifier.classify_text("buy usdt") is False
        assert session.requests == []


class TestClassifyImage:
    @pytest.mark.asyncio
    async def test_vision_request(self):
        session = DummySession(DummyResponse(payload=_completion("QR code. VERDICT: YES")))
        classifier = make_classifier(session, vision_model="vision-model")

        assert await classifier.classify_image("https://files.example/photo.jpg") is True

        payload = session.requests[0]["json"]
        assert payload["model"] == "vision-model"
        content = payload["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": IMAGE_POLICY_PROMPT}
        assert content[1] == {"type": "image_url", "image_url": {"url": "https://files.example/photo.jpg"}}

    @pytest.mark.asyncio
    async def test_image_http_error_is_clean(self):
        session = DummySession(DummyResponse(status=429, text="rate limited"))
        assert await make_classifier(session).classify_image("https://files.example/p.jpg") is False
