# backend/eagle_eye/analytics/statistics.py

"""
グルーピング結果から統計スナップショットを組み立てる。

ここでは外部 I/O は一切行わず、純粋に「集計ロジック」に限定する。
呼び出しごとにゼロから再計算し、キャッシュは持たない
（入力はフェッチ上限 1000 件で抑えられているため問題にならない）。
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Dict, List, Mapping, Optional, Sequence

from eagle_eye.features.schemas import FeatureRecord

from .anomalies import detect_anomalies
from .grouping import distinct_release_keys, group_by_category, group_releases
from .schemas import (
    AggregationWindow,
    AllTimeInsights,
    CategoryShare,
    CompanyReleaseStats,
    CompanyShare,
    StatisticsSnapshot,
    WeeklyPoint,
)
from .windows import normalize_now, previous_window, week_start


def compute_trend(current: int, previous: int) -> Optional[str]:
    """
    前ウィンドウ比の増減率を符号付きパーセント文字列で返す。

    >>> compute_trend(150, 100)
    '+50%'
    >>> compute_trend(80, 100)
    '-20%'

    previous が 0 の場合は比較対象がないので None を返す
    （inf / nan を UI に流さない）。
    """
    if previous <= 0:
        return None
    pct = int(round((current - previous) / previous * 100))
    return f"{pct:+d}%"


def _top_by_count(counts: Mapping[str, int]) -> Optional[str]:
    """
    件数最大のキーを返す。同数の場合は名前のアルファベット順で先のものを採用する。
    """
    if not counts:
        return None
    return min(counts.items(), key=lambda item: (-item[1], item[0]))[0]


def most_active_company(grouped: Mapping[str, CompanyReleaseStats]) -> Optional[str]:
    """total_releases 最大の会社（同数なら名前順で先）。"""
    return _top_by_count({name: stats.total_releases for name, stats in grouped.items()})


def top_category(category_counts: Mapping[str, int]) -> Optional[str]:
    """異なるリリース数が最大のカテゴリ（同数なら名前順で先）。"""
    return _top_by_count(category_counts)


def days_covered(days: Sequence[date]) -> int:
    """最古〜最新のリリース日の日数（両端含む）。データが無ければ 0。"""
    if not days:
        return 0
    return (max(days) - min(days)).days + 1


def avg_per_week(total_releases: int, covered_days: int) -> float:
    """
    total_releases / max(1, covered_days / 7) を小数第 1 位に丸める。
    """
    weeks = max(1.0, covered_days / 7)
    return round(total_releases / weeks, 1)


def percentage_shares(counts: Mapping[str, int]) -> Dict[str, int]:
    """各キーの合計に占める割合（整数 %）。合計 0 なら全て 0。"""
    total = sum(counts.values())
    if total <= 0:
        return {key: 0 for key in counts}
    return {key: int(round(value / total * 100)) for key, value in counts.items()}


def _company_shares(grouped: Mapping[str, CompanyReleaseStats]) -> List[CompanyShare]:
    shares = percentage_shares({name: stats.total_releases for name, stats in grouped.items()})
    rows = [
        CompanyShare(
            company_name=name,
            total_features=stats.total_features,
            total_releases=stats.total_releases,
            percentage=shares[name],
        )
        for name, stats in grouped.items()
    ]
    rows.sort(key=lambda row: (-row.total_releases, row.company_name))
    return rows


def _category_shares(category_counts: Mapping[str, int]) -> List[CategoryShare]:
    shares = percentage_shares(category_counts)
    rows = [
        CategoryShare(category=name, releases=count, percentage=shares[name])
        for name, count in category_counts.items()
    ]
    rows.sort(key=lambda row: (-row.releases, row.category))
    return rows


def weekly_series(
    records: Sequence[FeatureRecord],
    now: Optional[datetime] = None,
    weeks: int = 6,
) -> List[WeeklyPoint]:
    """
    直近 weeks 週（今週を含む）の ISO 週ごとの異なるリリース数を古い順に返す。
    """
    current_monday = week_start(normalize_now(now).date())
    keys = distinct_release_keys(records)

    series: List[WeeklyPoint] = []
    for offset in range(weeks - 1, -1, -1):
        start = current_monday - timedelta(days=7 * offset)
        end = start + timedelta(days=6)
        count = sum(1 for _, day in keys if start <= day <= end)
        series.append(
            WeeklyPoint(
                week_start=start,
                week_end=end,
                label=start.strftime("%b %d"),
                releases=count,
            )
        )
    return series


def build_snapshot(
    records: Sequence[FeatureRecord],
    window: AggregationWindow,
    now: Optional[datetime] = None,
    *,
    weeks: int = 6,
) -> StatisticsSnapshot:
    """
    window と直前の同じ長さのウィンドウを集計し、StatisticsSnapshot を返す。

    - total_releases: window 内の異なる (会社, 日付) の数
    - trend: 前ウィンドウ比（前ウィンドウが 0 件なら None）
    - avg_per_week: window 内で実際にリリースがあった期間で割る
    """
    now_norm = normalize_now(now)
    records = list(records)
    prev = previous_window(window)

    current = group_releases(records, window)
    previous = group_releases(records, prev)
    category_counts = group_by_category(records, window)

    total_releases = current.total_releases
    previous_total = previous.total_releases

    covered = days_covered(
        [day for stats in current.grouped.values() for day in stats.release_days]
    )

    return StatisticsSnapshot(
        window=window,
        previous_window=prev,
        total_releases=total_releases,
        total_features=current.total_features,
        previous_total_releases=previous_total,
        trend=compute_trend(total_releases, previous_total),
        most_active_company=most_active_company(current.grouped),
        top_category=top_category(category_counts),
        avg_per_week=avg_per_week(total_releases, covered),
        companies=_company_shares(current.grouped),
        categories=_category_shares(category_counts),
        weekly_series=weekly_series(records, now_norm, weeks=weeks),
        anomalies=detect_anomalies(records, now_norm, weeks=weeks),
        skipped=current.skipped,
        generated_at=now_norm,
    )


def build_alltime_insights(records: Sequence[FeatureRecord]) -> AllTimeInsights:
    """
    全期間の集計（All-Time Insights タブ相当）。
    """
    records = list(records)
    result = group_releases(records)
    category_counts = group_by_category(records)

    all_days = [day for stats in result.grouped.values() for day in stats.release_days]
    total_releases = result.total_releases

    return AllTimeInsights(
        total_releases=total_releases,
        total_features=result.total_features,
        total_companies=len(result.grouped),
        most_active_company=most_active_company(result.grouped),
        top_category=top_category(category_counts),
        avg_per_week=avg_per_week(total_releases, days_covered(all_days)),
        first_release=min(all_days) if all_days else None,
        last_release=max(all_days) if all_days else None,
        companies=_company_shares(result.grouped),
        categories=_category_shares(category_counts),
        skipped=result.skipped,
    )
