# backend/eagle_eye/notion/schemas.py

"""
Notion リレーの入出力スキーマ定義。

フロントエンドとの互換のため、ワイヤフォーマットは camelCase（alias）で出力する。
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SyncReleaseRow(BaseModel):
    """
    Notion テーブルに書き込む 1 行分。

    全項目任意。文字列以外が来た場合は文字列化し、None は空文字にする。
    """

    competitor: str = ""
    feature: str = ""
    summary: str = ""
    category: str = ""
    date: str = ""

    @field_validator("competitor", "feature", "summary", "category", "date", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    def cells(self) -> List[str]:
        return [self.competitor, self.feature, self.summary, self.category, self.date]


class ExchangeTokenRequest(_CamelModel):
    """/api/notion/exchange-token のリクエストボディ。code の空判定はサービス層で行う。"""

    code: Optional[str] = None


class SyncReleasesRequest(_CamelModel):
    """
    /api/notion/sync-releases のリクエストボディ。

    releases の配列チェックはサービス層（parse_release_rows）で行う。
    skipHeader は bool として検証するので "maybe" のような値は 400 になる。
    """

    releases: Any = None
    skip_header: bool = Field(False, alias="skipHeader")


class ExchangeTokenResponse(_CamelModel):
    success: bool = True
    workspace_id: Optional[str] = Field(None, alias="workspaceId")
    message: str = "Successfully connected to Notion"


class NotionStatusResponse(_CamelModel):
    connected: bool
    workspace_id: Optional[str] = Field(None, alias="workspaceId")
    connected_at: Optional[datetime] = Field(None, alias="connectedAt")


class DisconnectResponse(_CamelModel):
    success: bool = True
    message: str = "Disconnected from Notion"


class SyncReleasesResponse(_CamelModel):
    """
    /api/notion/sync-releases の成功レスポンス。

    totalCount > syncedCount の場合、Notion のテーブル行数上限で切り詰めたことを表す。
    """

    success: bool = True
    message: str
    page_id: str = Field(..., alias="pageId")
    page_url: str = Field(..., alias="pageUrl")
    synced_count: int = Field(..., alias="syncedCount")
    total_count: int = Field(..., alias="totalCount")
    header_written: bool = Field(..., alias="headerWritten")
    table_written: bool = Field(..., alias="tableWritten")


class RelayErrorResponse(_CamelModel):
    """
    リレーの失敗レスポンス。

    error_code で「呼び出し側のミス / 設定エラー / 上流エラー」を機械的に区別できる。
    """

    success: bool = False
    error: str
    error_code: str
    details: Optional[Any] = None
    header_written: Optional[bool] = Field(None, alias="headerWritten")
    table_written: Optional[bool] = Field(None, alias="tableWritten")
