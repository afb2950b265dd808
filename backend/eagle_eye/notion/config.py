# backend/eagle_eye/notion/config.py

"""
Notion リレーに必要な設定値をまとめるモジュール。

OAuth のクライアント ID / シークレットが未設定でもアプリは起動する。
その場合は OAuth 呼び出しのたびに NotionConfigError（設定エラー）になる。
"""

import re
from dataclasses import dataclass
from typing import Optional

from eagle_eye.utils.config import get_env, get_env_int

DEFAULT_REDIRECT_URI = "http://localhost:5174/connect-notion"

_HEX_PAGE_ID = re.compile(r"^[0-9a-fA-F]{32}$")


class NotionConfigError(RuntimeError):
    """サーバ側の設定不備（呼び出し側のミスとは区別する）。"""


@dataclass(frozen=True)
class NotionSettings:
    """Notion OAuth / API 用の設定値コンテナ。"""

    client_id: Optional[str]
    client_secret: Optional[str]
    redirect_uri: str
    api_base_url: str
    api_version: str
    target_page_id: Optional[str]
    timeout_seconds: int = 15

    def require_oauth_credentials(self) -> tuple[str, str]:
        if not self.client_id or not self.client_secret:
            raise NotionConfigError("Server configuration error: Missing Notion credentials")
        return self.client_id, self.client_secret

    def require_target_page_id(self) -> str:
        if not self.target_page_id:
            raise NotionConfigError("Server configuration error: Missing Notion target page")
        return normalize_page_id(self.target_page_id)


def normalize_page_id(raw: str) -> str:
    """
    32 桁 hex のページ ID をハイフン付き UUID 形式に揃える。
    すでにハイフン付きならそのまま返す。
    """
    value = raw.strip()
    if _HEX_PAGE_ID.match(value):
        return f"{value[0:8]}-{value[8:12]}-{value[12:16]}-{value[16:20]}-{value[20:]}"
    compact = value.replace("-", "")
    if _HEX_PAGE_ID.match(compact):
        return normalize_page_id(compact)
    raise NotionConfigError(f"Server configuration error: Invalid Notion page id {raw!r}")


def get_notion_settings() -> NotionSettings:
    """
    環境変数から Notion 設定を読み込む。

    テストで環境変数を差し替えられるよう、キャッシュはしない。

    任意（未設定でも起動はできる）:
      - NOTION_CLIENT_ID / NOTION_CLIENT_SECRET
      - NOTION_TARGET_PAGE_ID
      - REDIRECT_URI         (デフォルト: http://localhost:5174/connect-notion)
      - NOTION_API_BASE_URL  (デフォルト: https://api.notion.com/v1)
      - NOTION_API_VERSION   (デフォルト: 2022-06-28)
      - NOTION_TIMEOUT_SECONDS (デフォルト: 15)
    """
    api_base_url = get_env(
        "NOTION_API_BASE_URL",
        default="https://api.notion.com/v1",
        required=False,
    )

    return NotionSettings(
        client_id=get_env("NOTION_CLIENT_ID", required=False),
        client_secret=get_env("NOTION_CLIENT_SECRET", required=False),
        redirect_uri=get_env("REDIRECT_URI", default=DEFAULT_REDIRECT_URI, required=False),
        api_base_url=api_base_url.rstrip("/"),
        api_version=get_env("NOTION_API_VERSION", default="2022-06-28", required=False),
        target_page_id=get_env("NOTION_TARGET_PAGE_ID", required=False),
        timeout_seconds=get_env_int("NOTION_TIMEOUT_SECONDS", default=15),
    )
