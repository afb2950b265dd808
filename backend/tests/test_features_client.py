# backend/tests/test_features_client.py

import base64

import httpx
import pytest

from eagle_eye.features.client import (
    FeatureSourceClient,
    FeatureSourceConnectionError,
    FeatureSourceError,
    FeatureSourceHTTPError,
    FeatureSourceTimeoutError,
)
from eagle_eye.features.config import FeatureSourceSettings, get_feature_source_settings


def _settings(**overrides) -> FeatureSourceSettings:
    values = dict(
        base_url="http://features.test",
        username="eagle",
        password="s3cret",
        timeout_seconds=5,
        fetch_limit=1000,
    )
    values.update(overrides)
    return FeatureSourceSettings(**values)


def _install_transport(monkeypatch, handler) -> None:
    """httpx.Client を MockTransport 付きのものに差し替える。"""
    real_client = httpx.Client

    def fake_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(httpx, "Client", fake_client)


def test_list_features_sends_auth_and_paging(monkeypatch, feature_rows):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=feature_rows + ["not-an-object", {"name": "no id"}])

    _install_transport(monkeypatch, handler)

    records = FeatureSourceClient(settings=_settings()).list_features()

    assert seen["path"] == "/features"
    assert seen["params"] == {"skip": "0", "limit": "1000"}
    expected = base64.b64encode(b"eagle:s3cret").decode("ascii")
    assert seen["auth"] == f"Basic {expected}"
    # 不正な 2 行はスキップ
    assert len(records) == len(feature_rows)
    assert records[0].company_name == "Acme"


def test_no_auth_header_without_credentials(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=[])

    _install_transport(monkeypatch, handler)

    client = FeatureSourceClient(settings=_settings(username=None, password=None))
    assert client.list_categories() == []
    assert seen["auth"] is None


def test_http_error_keeps_status_and_body(monkeypatch):
    _install_transport(monkeypatch, lambda request: httpx.Response(503, json={"detail": "down"}))

    with pytest.raises(FeatureSourceHTTPError) as exc_info:
        FeatureSourceClient(settings=_settings()).list_companies()

    assert exc_info.value.status_code == 503
    assert exc_info.value.body == {"detail": "down"}


def test_non_list_body_is_an_error(monkeypatch):
    _install_transport(monkeypatch, lambda request: httpx.Response(200, json={"items": []}))

    with pytest.raises(FeatureSourceHTTPError):
        FeatureSourceClient(settings=_settings()).list_features()


def test_timeout_is_distinguished(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    _install_transport(monkeypatch, handler)

    with pytest.raises(FeatureSourceTimeoutError):
        FeatureSourceClient(settings=_settings()).list_features()


def test_connection_error(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    _install_transport(monkeypatch, handler)

    with pytest.raises(FeatureSourceConnectionError) as exc_info:
        FeatureSourceClient(settings=_settings()).list_features()

    assert isinstance(exc_info.value, FeatureSourceError)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("FEATURE_API_BASE_URL", "http://api.example.com/")
    monkeypatch.setenv("FEATURE_API_TIMEOUT_SECONDS", "30")
    monkeypatch.delenv("FEATURE_API_USERNAME", raising=False)

    settings = get_feature_source_settings()

    assert settings.base_url == "http://api.example.com"
    assert settings.timeout_seconds == 30
    assert settings.fetch_limit == 1000
    assert settings.username is None


def test_invalid_integer_env_is_reported(monkeypatch):
    monkeypatch.setenv("FEATURE_API_FETCH_LIMIT", "lots")

    with pytest.raises(RuntimeError, match="FEATURE_API_FETCH_LIMIT"):
        get_feature_source_settings()
