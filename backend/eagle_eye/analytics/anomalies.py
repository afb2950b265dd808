# backend/eagle_eye/analytics/anomalies.py

"""
会社ごとの週次リリース数から、ダッシュボードのアノマリーカードを生成する。

ルール:
- 今週の異なるリリース数を、直前 (weeks - 1) 週の平均・標準偏差（母標準偏差）と比較する
- spike: 今週 > 平均 + 2σ かつ 今週 >= 3
    - 今週 >= 2 × 平均 なら high、それ以外は medium
- drop: 平均 >= 2 かつ 今週 == 0 → medium
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from eagle_eye.features.schemas import FeatureRecord

from .categories import format_anomaly_type
from .grouping import distinct_release_keys
from .schemas import Anomaly, AnomalySeverity, ExpectedRange
from .windows import normalize_now, week_start

SPIKE_SIGMA = 2.0
SPIKE_MIN_RELEASES = 3
DROP_MIN_BASELINE = 2.0

_SEVERITY_ORDER = {
    AnomalySeverity.HIGH: 0,
    AnomalySeverity.MEDIUM: 1,
    AnomalySeverity.LOW: 2,
}


def _mean_std(values: Sequence[int]) -> tuple[float, float]:
    if not values:
        return 0.0, 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return mean, math.sqrt(variance)


def weekly_counts_by_company(
    records: Sequence[FeatureRecord],
    now: Optional[datetime] = None,
    weeks: int = 6,
) -> Dict[str, List[int]]:
    """
    会社ごとの週次リリース数（古い順、最後の要素が今週）を返す。
    対象期間にリリースが 1 件も無い会社は含めない。
    """
    current_monday = week_start(normalize_now(now).date())
    first_monday = current_monday - timedelta(days=7 * (weeks - 1))

    counts: Dict[str, List[int]] = defaultdict(lambda: [0] * weeks)
    for company, day in distinct_release_keys(records):
        if day < first_monday or day > current_monday + timedelta(days=6):
            continue
        index = (day - first_monday).days // 7
        counts[company][index] += 1

    return dict(counts)


def _round1(value: float) -> float:
    return round(value, 1)


def detect_anomalies(
    records: Sequence[FeatureRecord],
    now: Optional[datetime] = None,
    weeks: int = 6,
) -> List[Anomaly]:
    """
    直近 weeks 週のデータからアノマリーを検出する。

    weeks < 2 の場合はベースラインが取れないので空リストを返す。
    """
    if weeks < 2:
        return []

    anomalies: List[Anomaly] = []

    for company, series in weekly_counts_by_company(records, now, weeks).items():
        baseline = series[:-1]
        current = series[-1]
        mean, std = _mean_std(baseline)
        expected = ExpectedRange(min=_round1(max(0.0, mean - std)), max=_round1(mean + std))

        if current > mean + SPIKE_SIGMA * std and current >= SPIKE_MIN_RELEASES:
            severity = AnomalySeverity.HIGH if current >= 2 * mean else AnomalySeverity.MEDIUM
            anomalies.append(
                Anomaly(
                    anomaly_type="spike",
                    label=format_anomaly_type("spike"),
                    description=(
                        f"{company} shipped {current} releases this week, "
                        f"well above its {weeks - 1}-week average of {mean:.1f}."
                    ),
                    severity=severity,
                    affected_entity=company,
                    metric_value=float(current),
                    expected_range=expected,
                    recommendation=f"Review {company}'s latest releases for a coordinated launch.",
                )
            )
        elif mean >= DROP_MIN_BASELINE and current == 0:
            anomalies.append(
                Anomaly(
                    anomaly_type="drop",
                    label=format_anomaly_type("drop"),
                    description=(
                        f"{company} has no releases this week after averaging "
                        f"{mean:.1f} per week."
                    ),
                    severity=AnomalySeverity.MEDIUM,
                    affected_entity=company,
                    metric_value=0.0,
                    expected_range=expected,
                    recommendation=f"Watch {company} for a larger upcoming release.",
                )
            )

    anomalies.sort(key=lambda a: (_SEVERITY_ORDER[a.severity], a.affected_entity))
    return anomalies
