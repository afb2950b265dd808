# backend/eagle_eye/notion/client.py

"""
Notion API との通信を担当するクライアントモジュール。

- OAuth 認可コード → アクセストークンの交換
- ブロックの子要素追加（ページへの見出し・テーブル書き込み）
- ページ検索
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import NotionSettings, get_notion_settings

logger = logging.getLogger(__name__)


class NotionClientError(RuntimeError):
    """Notion クライアント全般の例外。"""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotionAuthError(NotionClientError):
    """認証・権限関連のエラー（401 / 403）。"""


class NotionInvalidGrantError(NotionClientError):
    """認可コードが使用済み・期限切れ、または redirect_uri が一致しない。"""


class NotionAPIError(NotionClientError):
    """その他 Notion API 呼び出し時のエラー。"""


class NotionTimeoutError(NotionClientError):
    """タイムアウト時の例外。"""


class NotionConnectionError(NotionClientError):
    """接続エラー時の例外。"""


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _mask(value: Optional[str]) -> str:
    if not value:
        return "NOT SET"
    return f"{value[:8]}..."


class NotionClient:
    """
    Notion API の薄いラッパークライアント。

    タイムアウトは必ず設定する（ハングした Notion 呼び出しで呼び出し元を止めない）。
    """

    def __init__(self, settings: Optional[NotionSettings] = None) -> None:
        self.settings = settings or get_notion_settings()

    @property
    def timeout(self) -> int:
        return self.settings.timeout_seconds

    def _build_headers(self, access_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Notion-Version": self.settings.api_version,
            "Content-Type": "application/json",
        }

    def _raise_for_status(self, response: httpx.Response) -> None:
        """
        HTTP レスポンスコードに応じて適切な例外を投げる。
        """
        if response.status_code < 400:
            return

        body = _response_body(response)
        if response.status_code in (401, 403):
            raise NotionAuthError(
                f"Notion API auth error: {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        if isinstance(body, dict) and body.get("error") == "invalid_grant":
            raise NotionInvalidGrantError(
                "Notion rejected the authorization code (invalid_grant).",
                status_code=response.status_code,
                body=body,
            )
        raise NotionAPIError(
            f"Notion API error: {response.status_code}",
            status_code=response.status_code,
            body=body,
        )

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        sender = httpx.post if method == "POST" else httpx.patch
        try:
            response = sender(url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as exc:
            raise NotionTimeoutError(
                f"Notion API timed out after {self.timeout}s"
            ) from exc
        except httpx.RequestError as exc:
            raise NotionConnectionError(f"Failed to call Notion API: {exc}") from exc

        self._raise_for_status(response)
        return response

    def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        OAuth 認可コードをアクセストークンに交換する。

        :raises NotionConfigError: クライアント ID / シークレット未設定
        :raises NotionAuthError: クライアント ID / シークレットが不正（401）
        :raises NotionInvalidGrantError: コードが使用済み・期限切れ
        :return: Notion の生レスポンス（access_token, workspace_id, bot_id ...）
        """
        client_id, client_secret = self.settings.require_oauth_credentials()

        logger.info(
            "Exchanging Notion OAuth code (client_id=%s, redirect_uri=%s)",
            _mask(client_id),
            self.settings.redirect_uri,
        )

        response = self._send(
            "POST",
            f"{self.settings.api_base_url}/oauth/token",
            json={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.redirect_uri,
            },
            auth=(client_id, client_secret),
            headers={"Content-Type": "application/json"},
        )

        data = _response_body(response)
        if not isinstance(data, dict) or not data.get("access_token"):
            raise NotionAPIError(
                "Unexpected Notion OAuth response: 'access_token' is missing.",
                status_code=response.status_code,
                body=data,
            )
        return data

    def append_block_children(
        self,
        access_token: str,
        block_id: str,
        children: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """ブロック（ページ）の末尾に子ブロックを追加する。"""
        response = self._send(
            "PATCH",
            f"{self.settings.api_base_url}/blocks/{block_id}/children",
            json={"children": children},
            headers=self._build_headers(access_token),
        )
        data = _response_body(response)
        return data if isinstance(data, dict) else {"raw": data}

    def search_pages(self, access_token: str, page_size: int = 10) -> Dict[str, Any]:
        """インテグレーションから見えるページを検索する。"""
        response = self._send(
            "POST",
            f"{self.settings.api_base_url}/search",
            json={
                "filter": {"property": "object", "value": "page"},
                "page_size": page_size,
            },
            headers=self._build_headers(access_token),
        )
        data = _response_body(response)
        if not isinstance(data, dict):
            raise NotionAPIError(
                "Unexpected Notion search response format.",
                status_code=response.status_code,
                body=data,
            )
        return data
