# backend/eagle_eye/analytics/router.py

"""
集計結果を返す FastAPI ルーター定義。

- GET /analytics/summary
- GET /analytics/weekly-trend
- GET /analytics/alltime
- GET /analytics/anomalies

フィーチャー API が失敗した場合はゼロ埋めの統計を返さず、
エラーメッセージをそのまま detail に載せて 502 / 504 を返す。
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Callable, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, status

from eagle_eye.features.client import FeatureSourceError, FeatureSourceTimeoutError

from .schemas import (
    AllTimeInsights,
    AnomalyReport,
    StatisticsSnapshot,
    WeeklyTrendResponse,
    WindowKind,
)
from .service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])

T = TypeVar("T")


@lru_cache()
def get_analytics_service() -> AnalyticsService:
    """
    AnalyticsService のシングルトンインスタンスを取得する。
    テストでは app.dependency_overrides で差し替える。
    """
    return AnalyticsService()


def _call_feature_source(func: Callable[[], T]) -> T:
    try:
        return func()
    except FeatureSourceTimeoutError as exc:
        logger.error("Feature API timed out: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=str(exc),
        ) from exc
    except FeatureSourceError as exc:
        logger.error("Feature API request failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc


@router.get(
    "/summary",
    response_model=StatisticsSnapshot,
    summary="今週 / 今月 / 今四半期のリリース統計",
)
def get_summary(
    window: WindowKind = Query(WindowKind.WEEK, description="week / month / quarter"),
    weeks: int = Query(6, ge=2, le=52, description="週次推移・アノマリー検出に使う週数"),
    service: AnalyticsService = Depends(get_analytics_service),
) -> StatisticsSnapshot:
    """現在のウィンドウと直前のウィンドウを比較した統計スナップショットを返す。"""
    return _call_feature_source(lambda: service.get_summary(window, weeks=weeks))


@router.get(
    "/weekly-trend",
    response_model=WeeklyTrendResponse,
    summary="週次リリース推移",
)
def get_weekly_trend(
    weeks: int = Query(6, ge=1, le=52),
    service: AnalyticsService = Depends(get_analytics_service),
) -> WeeklyTrendResponse:
    return _call_feature_source(lambda: service.get_weekly_trend(weeks=weeks))


@router.get(
    "/alltime",
    response_model=AllTimeInsights,
    summary="全期間のリリース統計",
)
def get_alltime(
    service: AnalyticsService = Depends(get_analytics_service),
) -> AllTimeInsights:
    return _call_feature_source(service.get_alltime)


@router.get(
    "/anomalies",
    response_model=AnomalyReport,
    summary="会社別のリリース数アノマリー",
)
def get_anomalies(
    weeks: int = Query(6, ge=2, le=52),
    service: AnalyticsService = Depends(get_analytics_service),
) -> AnomalyReport:
    return _call_feature_source(lambda: service.get_anomalies(weeks=weeks))
