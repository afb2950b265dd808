# backend/eagle_eye/analytics/service.py

"""
フィーチャー API クライアントと集計ロジックをつなぐサービス層。

- リクエストごとにフィーチャー一覧を取得し直す（キャッシュしない）
- 取得結果を statistics / anomalies に渡して結果モデルを返す
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from eagle_eye.features.client import FeatureSourceClient
from eagle_eye.features.schemas import FeatureRecord

from .anomalies import detect_anomalies
from .schemas import (
    AllTimeInsights,
    AnomalyReport,
    StatisticsSnapshot,
    WeeklyTrendResponse,
    WindowKind,
)
from .statistics import build_alltime_insights, build_snapshot, weekly_series
from .windows import current_window, normalize_now

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    ダッシュボード向けの集計結果を返すサービス。

    FeatureSourceClient の例外（FeatureSourceError 系）はそのまま上位に伝播させ、
    ルーター側で HTTP ステータスに変換する。
    """

    def __init__(
        self,
        client: Optional[FeatureSourceClient] = None,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._client = client or FeatureSourceClient()
        self._clock = clock

    def _now(self) -> datetime:
        return normalize_now(self._clock() if self._clock else None)

    def _fetch(self) -> List[FeatureRecord]:
        records = self._client.list_features(skip=0)
        logger.debug("Aggregating %d feature records", len(records))
        return records

    def get_summary(self, kind: WindowKind = WindowKind.WEEK, *, weeks: int = 6) -> StatisticsSnapshot:
        now = self._now()
        snapshot = build_snapshot(self._fetch(), current_window(kind, now), now, weeks=weeks)
        if snapshot.skipped:
            logger.warning(
                "Excluded %d feature records with missing or invalid release_date",
                len(snapshot.skipped),
            )
        return snapshot

    def get_weekly_trend(self, weeks: int = 6) -> WeeklyTrendResponse:
        series = weekly_series(self._fetch(), self._now(), weeks=weeks)
        return WeeklyTrendResponse(series=series, weeks=weeks)

    def get_alltime(self) -> AllTimeInsights:
        return build_alltime_insights(self._fetch())

    def get_anomalies(self, weeks: int = 6) -> AnomalyReport:
        anomalies = detect_anomalies(self._fetch(), self._now(), weeks=weeks)
        return AnomalyReport(anomalies=anomalies, count=len(anomalies), weeks=weeks)
