"""Unit tests for utils.telegram (no network)."""

import asyncio

import requests

from trend_bot.utils import telegram
from trend_bot.utils.telegram import TelegramNotifier, send_telegram


class FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


def test_send_skipped_when_not_configured(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("must not post")

    monkeypatch.setattr(requests, "post", fail)
    assert send_telegram("hi") is False
    assert send_telegram("hi", bot_token="t") is False


def test_send_ok(monkeypatch):
    calls = []

    def post(url, json=None, timeout=None):
        calls.append((url, json, timeout))
        return FakeResponse(200)

    monkeypatch.setattr(requests, "post", post)
    assert send_telegram("hello", bot_token="abc", chat_id="42") is True
    url, payload, timeout = calls[0]
    assert url == "https://api.telegram.org/botabc/sendMessage"
    assert payload == {"chat_id": "42", "text": "hello"}
    assert timeout == 10


def test_send_http_error_returns_false(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *a, **k: FakeResponse(401, "Unauthorized"))
    assert send_telegram("hello", bot_token="abc", chat_id="42") is False


def test_send_network_error_never_raises(monkeypatch):
    def post(*args, **kwargs):
        raise requests.ConnectionError("no route")

    monkeypatch.setattr(requests, "post", post)
    assert send_telegram("hello", bot_token="abc", chat_id="42") is False


def test_notifier_disabled_without_credentials(monkeypatch):
    sent = []
    monkeypatch.setattr(telegram, "send_telegram", lambda *a: sent.append(a))
    notifier = TelegramNotifier()
    assert notifier.enabled is False
    notifier.notify("hello")
    assert sent == []


def test_notifier_sends_inline_without_loop(monkeypatch):
    sent = []
    monkeypatch.setattr(telegram, "send_telegram", lambda *a: sent.append(a))
    TelegramNotifier("abc", "42").notify("hello")
    assert sent == [("hello", "abc", "42")]


def test_notifier_uses_executor_on_loop(monkeypatch):
    sent = []
    monkeypatch.setattr(telegram, "send_telegram", lambda *a: sent.append(a))

    async def scenario():
        TelegramNotifier("abc", "42").notify("from loop")

    # asyncio.run waits for the default executor before returning.
    asyncio.run(scenario())
    assert sent == [("from loop", "abc", "42")]
