# backend/eagle_eye/notion/token_store.py

"""
Notion OAuth トークンの保存先。

- プリンシパル ID（X-User-Id ヘッダー、未指定なら default_user）ごとに 1 レコード
- 再交換で上書き、切断で削除。期限切れチェック・リフレッシュはしない
- プロセス再起動で消える（永続化しない）

ストアは create_app() で app.state に 1 つ作り、FastAPI の Depends で注入する。
同期エンドポイントはスレッドプールで動くので、読み書きはロックで保護する。
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from fastapi import Header, Request

DEFAULT_PRINCIPAL_ID = "default_user"


@dataclass(frozen=True)
class OAuthTokenRecord:
    access_token: str
    workspace_id: Optional[str]
    bot_id: Optional[str] = None
    workspace_name: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class TokenStore(Protocol):
    def get(self, principal_id: str) -> Optional[OAuthTokenRecord]:
        ...

    def set(self, principal_id: str, record: OAuthTokenRecord) -> None:
        ...

    def delete(self, principal_id: str) -> None:
        ...


class InMemoryTokenStore:
    """プロセス内メモリにトークンを保持する TokenStore 実装。"""

    def __init__(self) -> None:
        self._records: Dict[str, OAuthTokenRecord] = {}
        self._lock = threading.Lock()

    def get(self, principal_id: str) -> Optional[OAuthTokenRecord]:
        with self._lock:
            return self._records.get(principal_id)

    def set(self, principal_id: str, record: OAuthTokenRecord) -> None:
        with self._lock:
            self._records[principal_id] = record

    def delete(self, principal_id: str) -> None:
        with self._lock:
            self._records.pop(principal_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def get_token_store(request: Request) -> TokenStore:
    """app.state に登録されたストアを返す FastAPI 依存関数。"""
    return request.app.state.notion_token_store


def get_principal_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    リクエストのプリンシパル ID。

    認証基盤が無いので X-User-Id ヘッダーをそのまま使う。
    未指定・空文字なら default_user。
    """
    if x_user_id is None or not x_user_id.strip():
        return DEFAULT_PRINCIPAL_ID
    return x_user_id.strip()
