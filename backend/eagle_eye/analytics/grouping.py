# backend/eagle_eye/analytics/grouping.py

"""
フィーチャーレコードを「リリース」単位に重複排除してグルーピングする。

リリース = 同じ company_name かつ同じ UTC 暦日の release_date を持つレコードの集合。
重複排除キーは (company_name, UTC 日付)。

release_date が欠損・パース不能なレコードは全ての件数から除外し、
GroupingResult.skipped に理由付きで返す（黙って件数を減らさない）。
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

from eagle_eye.features.schemas import FeatureRecord

from .categories import normalize_category
from .schemas import AggregationWindow, CompanyReleaseStats, GroupingResult, SkippedRecord
from .windows import to_utc_day

logger = logging.getLogger(__name__)

ReleaseKey = Tuple[str, date]


def _skip_reason(record: FeatureRecord) -> SkippedRecord:
    raw = record.release_date
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        reason = "missing_release_date"
    else:
        reason = "unparsable_release_date"

    return SkippedRecord(
        id=str(record.id),
        company_name=record.company_name,
        raw_release_date=None if raw is None else str(raw),
        reason=reason,
    )


def split_valid_records(
    records: Iterable[FeatureRecord],
) -> Tuple[List[Tuple[FeatureRecord, date]], List[SkippedRecord]]:
    """
    レコードを (record, UTC 日付) の組と、除外レコードに振り分ける。
    """
    valid: List[Tuple[FeatureRecord, date]] = []
    skipped: List[SkippedRecord] = []

    for record in records:
        day = to_utc_day(record.release_date)
        if day is None:
            skipped.append(_skip_reason(record))
            continue
        valid.append((record, day))

    if skipped:
        logger.debug("Skipped %d feature records with invalid release_date", len(skipped))

    return valid, skipped


def group_releases(
    records: Iterable[FeatureRecord],
    window: Optional[AggregationWindow] = None,
) -> GroupingResult:
    """
    window に含まれるレコードを company_name ごとに集計する。

    - window が None の場合は全期間を対象にする
    - total_features: レコード数
    - total_releases: 異なる (company_name, UTC 日付) の数
    """
    valid, skipped = split_valid_records(records)

    feature_counts: Dict[str, int] = defaultdict(int)
    release_days: Dict[str, Set[date]] = defaultdict(set)

    for record, day in valid:
        if window is not None and not window.contains(day):
            continue
        feature_counts[record.company_name] += 1
        release_days[record.company_name].add(day)

    grouped: Dict[str, CompanyReleaseStats] = {}
    for company, count in feature_counts.items():
        days = sorted(release_days[company])
        grouped[company] = CompanyReleaseStats(
            total_features=count,
            total_releases=len(days),
            release_days=days,
        )

    return GroupingResult(grouped=grouped, skipped=skipped)


def group_by_category(
    records: Iterable[FeatureRecord],
    window: Optional[AggregationWindow] = None,
) -> Dict[str, int]:
    """
    正規化済みカテゴリごとの異なるリリース数を返す。

    1 つのリリースに同じカテゴリのフィーチャーが複数あっても 1 とカウントする。
    複数カテゴリにまたがるリリースは、それぞれのカテゴリで 1 ずつカウントされる。
    """
    valid, _ = split_valid_records(records)

    keys: Dict[str, Set[ReleaseKey]] = defaultdict(set)
    for record, day in valid:
        if window is not None and not window.contains(day):
            continue
        keys[normalize_category(record.category)].add((record.company_name, day))

    return {category: len(release_keys) for category, release_keys in keys.items()}


def distinct_release_keys(
    records: Iterable[FeatureRecord],
    window: Optional[AggregationWindow] = None,
) -> Set[ReleaseKey]:
    """window 内の (company_name, UTC 日付) の集合。"""
    valid, _ = split_valid_records(records)
    return {
        (record.company_name, day)
        for record, day in valid
        if window is None or window.contains(day)
    }
