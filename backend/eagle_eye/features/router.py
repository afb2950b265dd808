# backend/eagle_eye/features/router.py

"""
オンボーディング画面向けのパススルーエンドポイント。

- GET /features/companies
- GET /features/categories
"""

from functools import lru_cache
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from .client import FeatureSourceClient, FeatureSourceError, FeatureSourceTimeoutError

router = APIRouter(prefix="/features", tags=["features"])


@lru_cache()
def get_feature_source_client() -> FeatureSourceClient:
    return FeatureSourceClient()


def _translate(exc: FeatureSourceError) -> HTTPException:
    if isinstance(exc, FeatureSourceTimeoutError):
        return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.get("/companies", summary="追跡対象の会社一覧")
def list_companies(
    client: FeatureSourceClient = Depends(get_feature_source_client),
) -> List[Dict[str, Any]]:
    try:
        return client.list_companies()
    except FeatureSourceError as exc:
        raise _translate(exc) from exc


@router.get("/categories", summary="カテゴリ一覧")
def list_categories(
    client: FeatureSourceClient = Depends(get_feature_source_client),
) -> List[Dict[str, Any]]:
    try:
        return client.list_categories()
    except FeatureSourceError as exc:
        raise _translate(exc) from exc
