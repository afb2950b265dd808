# backend/eagle_eye/notion/router.py

"""
Notion リレーの FastAPI ルーター定義。

- POST /api/notion/exchange-token
- GET  /api/notion/status
- GET  /api/notion/pages
- POST /api/notion/sync-releases
- POST /api/notion/disconnect

ボディの欠損・型違いも 422 ではなく {success: false, error} の 400 で返すため、
リクエストボディは Any で受け取り、ExchangeTokenRequest / SyncReleasesRequest の
model_validate で検証して ValidationError を NotionRelayError に変換する。
"""

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .schemas import (
    DisconnectResponse,
    ExchangeTokenRequest,
    ExchangeTokenResponse,
    NotionStatusResponse,
    RelayErrorResponse,
    SyncReleasesRequest,
    SyncReleasesResponse,
)
from .service import NotionRelayError, NotionRelayService
from .token_store import TokenStore, get_principal_id, get_token_store

router = APIRouter(prefix="/api/notion", tags=["notion"])


def get_notion_service(store: TokenStore = Depends(get_token_store)) -> NotionRelayService:
    """
    リクエストごとに NotionRelayService を組み立てる。
    設定は毎回環境変数から読むので、資格情報の未設定は呼び出し時に検出される。
    """
    return NotionRelayService(store)


def _error_response(exc: NotionRelayError) -> JSONResponse:
    body = RelayErrorResponse(
        error=exc.message,
        error_code=exc.error_code,
        details=exc.details,
        header_written=exc.header_written,
        table_written=exc.table_written,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.post(
    "/exchange-token",
    response_model=ExchangeTokenResponse,
    summary="OAuth 認可コードをアクセストークンに交換",
)
def exchange_token(
    payload: Any = Body(None),
    principal_id: str = Depends(get_principal_id),
    service: NotionRelayService = Depends(get_notion_service),
):
    try:
        try:
            request = ExchangeTokenRequest.model_validate(payload or {})
        except ValidationError as exc:
            raise NotionRelayError(400, "No authorization code provided", "missing_code") from exc
        return service.exchange_token(principal_id, request.code)
    except NotionRelayError as exc:
        return _error_response(exc)


@router.get(
    "/status",
    response_model=NotionStatusResponse,
    response_model_exclude_none=True,
    summary="Notion 接続状態",
)
def get_status(
    principal_id: str = Depends(get_principal_id),
    service: NotionRelayService = Depends(get_notion_service),
) -> NotionStatusResponse:
    return service.get_status(principal_id)


@router.get("/pages", summary="インテグレーションから見える Notion ページ一覧")
def list_pages(
    principal_id: str = Depends(get_principal_id),
    service: NotionRelayService = Depends(get_notion_service),
):
    try:
        return service.list_pages(principal_id)
    except NotionRelayError as exc:
        return _error_response(exc)


@router.post(
    "/sync-releases",
    response_model=SyncReleasesResponse,
    summary="リリース一覧を Notion ページにテーブルとして書き込む",
)
def sync_releases(
    payload: Any = Body(None),
    principal_id: str = Depends(get_principal_id),
    service: NotionRelayService = Depends(get_notion_service),
):
    """
    - 未接続 → 401（ボディ検証より先）
    - releases が配列でない・skipHeader が bool でない → 400
    - 99 件を超える分は切り詰め、syncedCount / totalCount で通知する（エラーにしない）
    """
    try:
        service.require_token(principal_id)
        try:
            request = SyncReleasesRequest.model_validate(payload or {})
        except ValidationError as exc:
            raise NotionRelayError(
                400,
                "Invalid releases data",
                "invalid_releases",
                details=exc.errors(include_url=False),
            ) from exc
        return service.sync_releases(
            principal_id,
            request.releases,
            skip_header=request.skip_header,
        )
    except NotionRelayError as exc:
        return _error_response(exc)


@router.post("/disconnect", response_model=DisconnectResponse, summary="Notion 連携を解除")
def disconnect(
    principal_id: str = Depends(get_principal_id),
    service: NotionRelayService = Depends(get_notion_service),
) -> DisconnectResponse:
    service.disconnect(principal_id)
    return DisconnectResponse()
