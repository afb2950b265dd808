# backend/eagle_eye/notion/service.py

"""
Notion クライアント・トークンストアとエンドポイントをつなぐサービス層。

- OAuth トークン交換と保存
- 接続状態の確認・切断
- リリース一覧を Notion ページに見出し + テーブルとして書き込む

失敗はすべて NotionRelayError（HTTP ステータス・error_code 付き）に変換し、
ルーター側で構造化 JSON レスポンスにする。
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .client import (
    NotionAuthError,
    NotionClient,
    NotionClientError,
    NotionConnectionError,
    NotionInvalidGrantError,
    NotionTimeoutError,
)
from .config import NotionConfigError, NotionSettings, get_notion_settings
from .schemas import (
    ExchangeTokenResponse,
    NotionStatusResponse,
    SyncReleaseRow,
    SyncReleasesResponse,
)
from .token_store import OAuthTokenRecord, TokenStore

logger = logging.getLogger(__name__)

# ヘッダー行 1 + データ行 99 = Notion のテーブル子ブロック上限 100
MAX_TABLE_ROWS = 99
TABLE_COLUMNS = ["Competitor", "Feature", "Summary", "Category", "Date"]

NOT_CONNECTED_MESSAGE = "Not connected to Notion"


class NotionRelayError(Exception):
    """
    リレー処理の失敗。

    error_code の一覧:
      - missing_code / invalid_releases: 呼び出し側のミス（4xx）
      - not_connected: トークン未保存（401）
      - configuration_error: サーバ設定不備（500）
      - invalid_client / invalid_grant / timeout / network_error / upstream_error: Notion 側
      - header_write_failed / table_write_failed: 同期の各フェーズの失敗
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str,
        *,
        details: Any = None,
        header_written: Optional[bool] = None,
        table_written: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error_code = error_code
        self.details = details
        self.header_written = header_written
        self.table_written = table_written


def _provider_details(exc: NotionClientError) -> Any:
    return exc.body if exc.body is not None else str(exc)


def _translate_exchange_error(exc: NotionClientError) -> NotionRelayError:
    if isinstance(exc, NotionAuthError):
        return NotionRelayError(
            500,
            "Invalid Notion Client ID or Secret. Check the server environment.",
            "invalid_client",
            details=_provider_details(exc),
        )
    if isinstance(exc, NotionInvalidGrantError):
        return NotionRelayError(
            400,
            "Invalid or expired authorization code. The code may have already been used "
            "or the redirect_uri doesn't match.",
            "invalid_grant",
            details=_provider_details(exc),
        )
    if isinstance(exc, NotionTimeoutError):
        return NotionRelayError(504, "Timed out waiting for Notion", "timeout", details=str(exc))
    if isinstance(exc, NotionConnectionError):
        return NotionRelayError(
            502, "Could not reach Notion", "network_error", details=str(exc)
        )
    return NotionRelayError(
        500,
        "Failed to exchange code for access token",
        "upstream_error",
        details=_provider_details(exc),
    )


def _rich_text(content: str, *, bold: bool = False) -> Dict[str, Any]:
    item: Dict[str, Any] = {"type": "text", "text": {"content": content}}
    if bold:
        item["annotations"] = {"bold": True}
    return item


def build_header_blocks(total_count: int, synced_at: datetime) -> List[Dict[str, Any]]:
    """区切り線・見出し・件数の段落からなる見出しブロック群。"""
    stamp = synced_at.strftime("%Y-%m-%d %H:%M:%S UTC")
    return [
        {"object": "block", "type": "divider", "divider": {}},
        {
            "object": "block",
            "type": "heading_2",
            "heading_2": {
                "rich_text": [_rich_text(f"🔄 Sync - {stamp}")],
                "color": "blue",
            },
        },
        {
            "object": "block",
            "type": "paragraph",
            "paragraph": {
                "rich_text": [
                    _rich_text(
                        f"📊 {total_count} competitive releases synced from Eagle Eye Dashboard"
                    )
                ]
            },
        },
    ]


def build_table_block(rows: List[SyncReleaseRow]) -> Dict[str, Any]:
    """列ヘッダー（太字）+ データ行の table ブロック。"""
    header_row = {
        "type": "table_row",
        "table_row": {"cells": [[_rich_text(name, bold=True)] for name in TABLE_COLUMNS]},
    }
    data_rows = [
        {
            "type": "table_row",
            "table_row": {"cells": [[_rich_text(value)] for value in row.cells()]},
        }
        for row in rows
    ]
    return {
        "object": "block",
        "type": "table",
        "table": {
            "table_width": len(TABLE_COLUMNS),
            "has_column_header": True,
            "has_row_header": False,
            "children": [header_row, *data_rows],
        },
    }


def parse_release_rows(releases: Any) -> List[SyncReleaseRow]:
    """
    リクエストの releases を行のリストに変換する。

    list 以外は NotionRelayError(400)。要素が dict でない場合は空行として扱う。
    """
    if not isinstance(releases, list):
        raise NotionRelayError(400, "Invalid releases data", "invalid_releases")

    rows: List[SyncReleaseRow] = []
    for item in releases:
        if isinstance(item, dict):
            rows.append(SyncReleaseRow.model_validate(item))
        else:
            rows.append(SyncReleaseRow())
    return rows


class NotionRelayService:
    """
    Notion リレーのサービス。

    トークンストアは呼び出し側（FastAPI の依存関数）から注入する。
    """

    def __init__(
        self,
        store: TokenStore,
        *,
        client: Optional[NotionClient] = None,
        settings: Optional[NotionSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._settings = settings or (client.settings if client else get_notion_settings())
        self._client = client or NotionClient(settings=self._settings)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ---- OAuth -----------------------------------------------------------

    def exchange_token(self, principal_id: str, code: Optional[str]) -> ExchangeTokenResponse:
        """
        認可コードをトークンに交換し、プリンシパルのレコードを上書きする。

        同じコードの再送は Notion 側で invalid_grant になる（冪等ではない）。
        """
        if not isinstance(code, str) or not code.strip():
            raise NotionRelayError(400, "No authorization code provided", "missing_code")

        try:
            data = self._client.exchange_code(code.strip())
        except NotionConfigError as exc:
            logger.error("Notion OAuth is not configured: %s", exc)
            raise NotionRelayError(500, str(exc), "configuration_error") from exc
        except NotionClientError as exc:
            logger.error(
                "Error exchanging Notion code for token: status=%s body=%r",
                exc.status_code,
                exc.body,
            )
            raise _translate_exchange_error(exc) from exc

        record = OAuthTokenRecord(
            access_token=data["access_token"],
            workspace_id=data.get("workspace_id"),
            bot_id=data.get("bot_id"),
            workspace_name=data.get("workspace_name"),
            timestamp=self._clock(),
        )
        self._store.set(principal_id, record)
        logger.info("Connected to Notion workspace %s", record.workspace_id)

        return ExchangeTokenResponse(workspace_id=record.workspace_id)

    def get_status(self, principal_id: str) -> NotionStatusResponse:
        record = self._store.get(principal_id)
        if record is None:
            return NotionStatusResponse(connected=False)
        return NotionStatusResponse(
            connected=True,
            workspace_id=record.workspace_id,
            connected_at=record.timestamp,
        )

    def disconnect(self, principal_id: str) -> None:
        self._store.delete(principal_id)
        logger.info("Disconnected Notion for principal %s", principal_id)

    def require_token(self, principal_id: str) -> OAuthTokenRecord:
        """トークン未保存なら 401 の NotionRelayError。"""
        record = self._store.get(principal_id)
        if record is None:
            raise NotionRelayError(401, NOT_CONNECTED_MESSAGE, "not_connected")
        return record

    # ---- ページ検索 -------------------------------------------------------

    def list_pages(self, principal_id: str, page_size: int = 10) -> Dict[str, Any]:
        record = self.require_token(principal_id)
        try:
            return self._client.search_pages(record.access_token, page_size=page_size)
        except NotionClientError as exc:
            logger.error("Error fetching Notion pages: %s", exc)
            if isinstance(exc, NotionTimeoutError):
                raise NotionRelayError(504, "Timed out waiting for Notion", "timeout") from exc
            if isinstance(exc, NotionConnectionError):
                raise NotionRelayError(502, "Could not reach Notion", "network_error") from exc
            raise NotionRelayError(
                500,
                "Failed to fetch Notion pages",
                "upstream_error",
                details=_provider_details(exc),
            ) from exc

    # ---- 同期 -------------------------------------------------------------

    def sync_releases(
        self,
        principal_id: str,
        releases: Any,
        *,
        skip_header: bool = False,
    ) -> SyncReleasesResponse:
        """
        リリース一覧を対象ページに書き込む。

        1. 見出しブロック（区切り線・見出し・件数）を追加
        2. テーブルブロックを追加（最大 99 行、超過分は切り詰めて件数で通知）

        2 つの呼び出しはトランザクションではない。テーブル追加だけ失敗した場合は
        header_written=True の table_write_failed を返すので、呼び出し側は
        skip_header=True で再送すればテーブルだけ書き直せる。
        同じ内容を再実行すると見出しは重複して追加される。
        """
        record = self.require_token(principal_id)
        rows = parse_release_rows(releases)

        try:
            page_id = self._settings.require_target_page_id()
        except NotionConfigError as exc:
            logger.error("Notion sync target is not configured: %s", exc)
            raise NotionRelayError(500, str(exc), "configuration_error") from exc

        total_count = len(rows)
        to_sync = rows[:MAX_TABLE_ROWS]
        if total_count > MAX_TABLE_ROWS:
            logger.warning(
                "Only syncing first %d of %d releases due to Notion table limit",
                MAX_TABLE_ROWS,
                total_count,
            )

        logger.info("Syncing %d releases to Notion page %s", total_count, page_id)

        header_written = False
        if not skip_header:
            try:
                self._client.append_block_children(
                    record.access_token,
                    page_id,
                    build_header_blocks(total_count, self._clock()),
                )
            except NotionClientError as exc:
                logger.error("Failed to add header blocks: %r", exc.body or str(exc))
                raise NotionRelayError(
                    500,
                    "Failed to sync releases to Notion: header could not be written",
                    "header_write_failed",
                    details=_provider_details(exc),
                    header_written=False,
                    table_written=False,
                ) from exc
            header_written = True

        try:
            self._client.append_block_children(
                record.access_token,
                page_id,
                [build_table_block(to_sync)],
            )
        except NotionClientError as exc:
            logger.error("Failed to add table: %r", exc.body or str(exc))
            raise NotionRelayError(
                500,
                "Failed to sync releases to Notion: table could not be written",
                "table_write_failed",
                details=_provider_details(exc),
                header_written=header_written,
                table_written=False,
            ) from exc

        logger.info("Synced %d releases to Notion", len(to_sync))

        return SyncReleasesResponse(
            message=f"Successfully synced {len(to_sync)} releases as table to Notion page",
            page_id=page_id,
            page_url=f"https://notion.so/{page_id.replace('-', '')}",
            synced_count=len(to_sync),
            total_count=total_count,
            header_written=header_written,
            table_written=True,
        )
