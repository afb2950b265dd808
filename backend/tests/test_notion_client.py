# backend/tests/test_notion_client.py

import json

import httpx
import pytest

from eagle_eye.notion.client import (
    NotionAPIError,
    NotionAuthError,
    NotionClient,
    NotionClientError,
    NotionConnectionError,
    NotionInvalidGrantError,
    NotionTimeoutError,
)
from eagle_eye.notion.config import (
    NotionConfigError,
    NotionSettings,
    get_notion_settings,
    normalize_page_id,
)


def _settings(**overrides) -> NotionSettings:
    values = dict(
        client_id="client-id-1234567890",
        client_secret="client-secret",
        redirect_uri="http://localhost:5174/connect-notion",
        api_base_url="https://api.notion.test/v1",
        api_version="2022-06-28",
        target_page_id="2a4beee2c20b80f08975fcc1540e3d2c",
        timeout_seconds=5,
    )
    values.update(overrides)
    return NotionSettings(**values)


def _json_response(status_code: int, data) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        content=json.dumps(data).encode("utf-8"),
    )


def test_exchange_code_success(monkeypatch):
    captured = {}

    def fake_post(url, **kwargs):
        captured["url"] = url
        captured.update(kwargs)
        return _json_response(
            200,
            {"access_token": "secret-token", "workspace_id": "ws-1", "bot_id": "bot-1"},
        )

    monkeypatch.setattr(httpx, "post", fake_post)

    data = NotionClient(settings=_settings()).exchange_code("auth-code")

    assert data["workspace_id"] == "ws-1"
    assert captured["url"] == "https://api.notion.test/v1/oauth/token"
    assert captured["auth"] == ("client-id-1234567890", "client-secret")
    assert captured["json"] == {
        "grant_type": "authorization_code",
        "code": "auth-code",
        "redirect_uri": "http://localhost:5174/connect-notion",
    }
    assert captured["timeout"] == 5


def test_exchange_code_without_credentials_is_config_error(monkeypatch):
    def fake_post(*args, **kwargs):
        raise AssertionError("must not call Notion without credentials")

    monkeypatch.setattr(httpx, "post", fake_post)

    with pytest.raises(NotionConfigError):
        NotionClient(settings=_settings(client_secret=None)).exchange_code("auth-code")


def test_exchange_code_401(monkeypatch):
    monkeypatch.setattr(
        httpx, "post", lambda *a, **k: _json_response(401, {"error": "invalid_client"})
    )

    with pytest.raises(NotionAuthError) as exc_info:
        NotionClient(settings=_settings()).exchange_code("auth-code")

    assert exc_info.value.status_code == 401
    assert exc_info.value.body == {"error": "invalid_client"}


def test_exchange_code_invalid_grant(monkeypatch):
    monkeypatch.setattr(
        httpx,
        "post",
        lambda *a, **k: _json_response(400, {"error": "invalid_grant", "error_description": "used"}),
    )

    with pytest.raises(NotionInvalidGrantError):
        NotionClient(settings=_settings()).exchange_code("auth-code")


def test_exchange_code_missing_access_token(monkeypatch):
    monkeypatch.setattr(httpx, "post", lambda *a, **k: _json_response(200, {"workspace_id": "ws"}))

    with pytest.raises(NotionAPIError):
        NotionClient(settings=_settings()).exchange_code("auth-code")


def test_append_block_children_uses_bearer_token(monkeypatch):
    captured = {}

    def fake_patch(url, **kwargs):
        captured["url"] = url
        captured.update(kwargs)
        return _json_response(200, {"results": []})

    monkeypatch.setattr(httpx, "patch", fake_patch)

    NotionClient(settings=_settings()).append_block_children("tok", "page-1", [{"type": "divider"}])

    assert captured["url"] == "https://api.notion.test/v1/blocks/page-1/children"
    assert captured["headers"]["Authorization"] == "Bearer tok"
    assert captured["headers"]["Notion-Version"] == "2022-06-28"
    assert captured["json"] == {"children": [{"type": "divider"}]}


def test_append_block_children_api_error(monkeypatch):
    monkeypatch.setattr(
        httpx, "patch", lambda *a, **k: _json_response(400, {"code": "validation_error"})
    )

    with pytest.raises(NotionAPIError) as exc_info:
        NotionClient(settings=_settings()).append_block_children("tok", "page-1", [])

    assert exc_info.value.body == {"code": "validation_error"}


def test_timeout_and_network_errors(monkeypatch):
    client = NotionClient(settings=_settings())

    def timeout_post(*args, **kwargs):
        raise httpx.ReadTimeout("timed out", request=None)

    monkeypatch.setattr(httpx, "post", timeout_post)
    with pytest.raises(NotionTimeoutError):
        client.search_pages("tok")

    def network_post(*args, **kwargs):
        raise httpx.RequestError("network error", request=None)

    monkeypatch.setattr(httpx, "post", network_post)
    with pytest.raises(NotionConnectionError) as exc_info:
        client.search_pages("tok")

    assert isinstance(exc_info.value, NotionClientError)


def test_normalize_page_id():
    assert normalize_page_id("2a4beee2c20b80f08975fcc1540e3d2c") == (
        "2a4beee2-c20b-80f0-8975-fcc1540e3d2c"
    )
    assert normalize_page_id("2a4beee2-c20b-80f0-8975-fcc1540e3d2c") == (
        "2a4beee2-c20b-80f0-8975-fcc1540e3d2c"
    )
    with pytest.raises(NotionConfigError):
        normalize_page_id("not-a-page")


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("REDIRECT_URI", raising=False)
    monkeypatch.delenv("NOTION_API_BASE_URL", raising=False)
    monkeypatch.delenv("NOTION_CLIENT_ID", raising=False)

    settings = get_notion_settings()

    assert settings.redirect_uri == "http://localhost:5174/connect-notion"
    assert settings.api_base_url == "https://api.notion.com/v1"
    assert settings.client_id is None
    with pytest.raises(NotionConfigError):
        settings.require_oauth_credentials()
