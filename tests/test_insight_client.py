"""Tests for the optional text-suggestion client (HTTP mocked)."""

import json

import httpx
import pytest

from faturacao.config.settings import settings
from faturacao.infrastructure.external import insight_client

_RealAsyncClient = httpx.AsyncClient


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "INSIGHT_API_URL", "http://insight.local/v1/suggest")
    monkeypatch.setattr(settings, "INSIGHT_API_KEY", "secret")


def _use_transport(monkeypatch, handler):
    """Route the client's requests through ``handler``."""
    def _client(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)
    monkeypatch.setattr(insight_client.httpx, "AsyncClient", _client)


class TestGenerateSuggestion:

    def test_not_configured(self, event_loop, monkeypatch):
        monkeypatch.setattr(settings, "INSIGHT_API_URL", "")
        assert not insight_client.is_configured()
        assert event_loop.run_until_complete(insight_client.generate_suggestion("hi")) == ""

    def test_returns_text(self, event_loop, monkeypatch, configured):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"text": "  Cobre as facturas vencidas.  "})

        _use_transport(monkeypatch, handler)
        text = event_loop.run_until_complete(insight_client.generate_suggestion("resumo"))

        assert text == "Cobre as facturas vencidas."
        assert seen["auth"] == "Bearer secret"
        assert seen["body"] == {"prompt": "resumo"}

    def test_timeout_yields_empty(self, event_loop, monkeypatch, configured):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        _use_transport(monkeypatch, handler)
        assert event_loop.run_until_complete(insight_client.generate_suggestion("x")) == ""

    def test_http_error_yields_empty(self, event_loop, monkeypatch, configured):
        _use_transport(monkeypatch, lambda request: httpx.Response(503))
        assert event_loop.run_until_complete(insight_client.generate_suggestion("x")) == ""

    def test_malformed_body_yields_empty(self, event_loop, monkeypatch, configured):
        _use_transport(monkeypatch, lambda request: httpx.Response(200, content=b"not json"))
        assert event_loop.run_until_complete(insight_client.generate_suggestion("x")) == ""

    def test_missing_text_yields_empty(self, event_loop, monkeypatch, configured):
        _use_transport(monkeypatch, lambda request: httpx.Response(200, json={"other": 1}))
        assert event_loop.run_until_complete(insight_client.generate_suggestion("x")) == ""
