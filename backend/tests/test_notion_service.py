# backend/tests/test_notion_service.py

from datetime import datetime, timezone

import pytest

from eagle_eye.notion.client import (
    NotionAPIError,
    NotionAuthError,
    NotionConnectionError,
    NotionInvalidGrantError,
    NotionTimeoutError,
)
from eagle_eye.notion.config import NotionSettings
from eagle_eye.notion.service import (
    MAX_TABLE_ROWS,
    NotionRelayError,
    NotionRelayService,
    build_table_block,
    parse_release_rows,
)
from eagle_eye.notion.token_store import InMemoryTokenStore, OAuthTokenRecord

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
PAGE_ID = "2a4beee2-c20b-80f0-8975-fcc1540e3d2c"


def _settings(**overrides) -> NotionSettings:
    values = dict(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:5174/connect-notion",
        api_base_url="https://api.notion.test/v1",
        api_version="2022-06-28",
        target_page_id="2a4beee2c20b80f08975fcc1540e3d2c",
    )
    values.update(overrides)
    return NotionSettings(**values)


class FakeNotionClient:
    """NotionClient の代わりに呼び出しを記録するフェイク。"""

    def __init__(self, settings=None, *, exchange_error=None, append_errors=None) -> None:
        self.settings = settings or _settings()
        self.exchange_error = exchange_error
        self.append_errors = list(append_errors or [])
        self.appended = []

    def exchange_code(self, code):
        self.settings.require_oauth_credentials()
        if self.exchange_error is not None:
            raise self.exchange_error
        return {"access_token": f"token-for-{code}", "workspace_id": "ws-1", "bot_id": "bot-1"}

    def append_block_children(self, access_token, block_id, children):
        error = self.append_errors.pop(0) if self.append_errors else None
        if error is not None:
            raise error
        self.appended.append((access_token, block_id, children))
        return {}

    def search_pages(self, access_token, page_size=10):
        return {"results": [{"id": "page-1"}], "page_size": page_size}


def _service(client=None, store=None):
    client = client or FakeNotionClient()
    return NotionRelayService(
        store or InMemoryTokenStore(),
        client=client,
        settings=client.settings,
        clock=lambda: NOW,
    )


def _connected_service(client=None):
    store = InMemoryTokenStore()
    store.set("default_user", OAuthTokenRecord(access_token="tok", workspace_id="ws-1"))
    return _service(client=client, store=store)


def _rows(n):
    return [
        {"competitor": f"C{i}", "feature": f"F{i}", "summary": "s", "category": "Mobile", "date": "2025-01-01"}
        for i in range(n)
    ]


def test_exchange_then_status_then_disconnect():
    service = _service()

    result = service.exchange_token("default_user", "code-1")

    assert result.success is True
    assert result.workspace_id == "ws-1"

    status = service.get_status("default_user")
    assert status.connected is True
    assert status.workspace_id == "ws-1"
    assert status.connected_at == NOW

    service.disconnect("default_user")
    assert service.get_status("default_user").connected is False


def test_tokens_are_kept_per_principal():
    service = _service()

    service.exchange_token("alice", "code-a")

    assert service.get_status("alice").connected is True
    assert service.get_status("bob").connected is False


@pytest.mark.parametrize("code", [None, "", "   ", 123])
def test_exchange_requires_code(code):
    with pytest.raises(NotionRelayError) as exc_info:
        _service().exchange_token("default_user", code)

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "No authorization code provided"
    assert exc_info.value.error_code == "missing_code"


@pytest.mark.parametrize(
    "error, status_code, error_code",
    [
        (NotionAuthError("401", status_code=401, body={"error": "unauthorized"}), 500, "invalid_client"),
        (NotionInvalidGrantError("used", status_code=400, body={"error": "invalid_grant"}), 400, "invalid_grant"),
        (NotionTimeoutError("timed out"), 504, "timeout"),
        (NotionConnectionError("refused"), 502, "network_error"),
        (NotionAPIError("boom", status_code=500, body={"message": "boom"}), 500, "upstream_error"),
    ],
)
def test_exchange_maps_provider_errors(error, status_code, error_code):
    store = InMemoryTokenStore()
    service = _service(client=FakeNotionClient(exchange_error=error), store=store)

    with pytest.raises(NotionRelayError) as exc_info:
        service.exchange_token("default_user", "code-1")

    assert exc_info.value.status_code == status_code
    assert exc_info.value.error_code == error_code
    assert len(store) == 0


def test_exchange_without_credentials_is_configuration_error():
    client = FakeNotionClient(settings=_settings(client_id=None))

    with pytest.raises(NotionRelayError) as exc_info:
        _service(client=client).exchange_token("default_user", "code-1")

    assert exc_info.value.status_code == 500
    assert exc_info.value.error_code == "configuration_error"
    assert "Missing Notion credentials" in exc_info.value.message


def test_three_failure_kinds_are_distinguishable():
    used = FakeNotionClient(exchange_error=NotionInvalidGrantError("used", body={"error": "invalid_grant"}))
    unconfigured = FakeNotionClient(settings=_settings(client_secret=None))
    offline = FakeNotionClient(exchange_error=NotionConnectionError("refused"))

    errors = []
    for client in (used, unconfigured, offline):
        with pytest.raises(NotionRelayError) as exc_info:
            _service(client=client).exchange_token("default_user", "code-1")
        errors.append(exc_info.value)

    assert len({e.error_code for e in errors}) == 3
    assert len({e.message for e in errors}) == 3


def test_sync_requires_connection_first():
    with pytest.raises(NotionRelayError) as exc_info:
        _service().sync_releases("default_user", None)

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "Not connected to Notion"


@pytest.mark.parametrize("releases", [None, "rows", {"competitor": "Acme"}])
def test_sync_rejects_non_list(releases):
    with pytest.raises(NotionRelayError) as exc_info:
        _connected_service().sync_releases("default_user", releases)

    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Invalid releases data"


def test_sync_truncates_to_table_limit():
    client = FakeNotionClient()

    result = _connected_service(client).sync_releases("default_user", _rows(150))

    assert result.synced_count == MAX_TABLE_ROWS == 99
    assert result.total_count == 150
    assert result.header_written is True
    assert result.table_written is True
    assert result.page_id == PAGE_ID
    assert result.page_url == "https://notion.so/2a4beee2c20b80f08975fcc1540e3d2c"

    (_, header_page, header_blocks), (_, table_page, table_blocks) = client.appended
    assert header_page == table_page == PAGE_ID
    assert [b["type"] for b in header_blocks] == ["divider", "heading_2", "paragraph"]
    assert "150 competitive releases" in (
        header_blocks[2]["paragraph"]["rich_text"][0]["text"]["content"]
    )
    table = table_blocks[0]["table"]
    assert table["table_width"] == 5
    # ヘッダー行 + 99 行
    assert len(table["children"]) == 100


def test_sync_header_failure_writes_nothing():
    client = FakeNotionClient(append_errors=[NotionAPIError("bad", body={"code": "object_not_found"})])

    with pytest.raises(NotionRelayError) as exc_info:
        _connected_service(client).sync_releases("default_user", _rows(3))

    err = exc_info.value
    assert err.error_code == "header_write_failed"
    assert err.header_written is False
    assert err.table_written is False
    assert err.details == {"code": "object_not_found"}
    assert client.appended == []


def test_sync_table_failure_reports_header_written_and_can_retry_table_only():
    client = FakeNotionClient(append_errors=[None, NotionAPIError("bad", body={"code": "validation_error"})])
    service = _connected_service(client)

    with pytest.raises(NotionRelayError) as exc_info:
        service.sync_releases("default_user", _rows(3))

    err = exc_info.value
    assert err.error_code == "table_write_failed"
    assert err.header_written is True
    assert err.table_written is False
    assert len(client.appended) == 1

    retry = service.sync_releases("default_user", _rows(3), skip_header=True)

    assert retry.header_written is False
    assert retry.table_written is True
    assert len(client.appended) == 2
    assert client.appended[1][2][0]["type"] == "table"


def test_sync_without_target_page_is_configuration_error():
    client = FakeNotionClient(settings=_settings(target_page_id=None))

    with pytest.raises(NotionRelayError) as exc_info:
        _connected_service(client).sync_releases("default_user", _rows(1))

    assert exc_info.value.status_code == 500
    assert exc_info.value.error_code == "configuration_error"


def test_list_pages_requires_connection():
    with pytest.raises(NotionRelayError) as exc_info:
        _service().list_pages("default_user")

    assert exc_info.value.status_code == 401

    assert _connected_service().list_pages("default_user")["results"][0]["id"] == "page-1"


def test_parse_release_rows_is_lenient():
    rows = parse_release_rows([{"competitor": "Acme", "date": None, "feature": 42}, "junk"])

    assert rows[0].cells() == ["Acme", "42", "", "", ""]
    assert rows[1].cells() == ["", "", "", "", ""]

    block = build_table_block(rows)
    header_cells = block["table"]["children"][0]["table_row"]["cells"]
    assert [c[0]["text"]["content"] for c in header_cells] == [
        "Competitor",
        "Feature",
        "Summary",
        "Category",
        "Date",
    ]
    assert header_cells[0][0]["annotations"] == {"bold": True}
