# backend/eagle_eye/analytics/windows.py

"""
集計ウィンドウと日付正規化のヘルパー。

日付の粒度はすべて UTC の暦日に統一する。
- naive な datetime は UTC とみなす
- aware な datetime は UTC に変換してから日付を取る
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from .schemas import AggregationWindow, WindowKind

# "2025-01-14", "2025-01-14T10:00:00.12Z", "2025-01-14T10:00:00+0000" などを受け付ける
_DATETIME_ADAPTER = TypeAdapter(datetime)
_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


def normalize_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def to_utc_day(value: Any) -> Optional[date]:
    """
    release_date の生の値を UTC 暦日に変換する。

    変換できない値（None, 空文字, 不正な文字列, 想定外の型）は None を返す。
    例外は投げない。
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(timezone.utc).date()

    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    # 数字だけの文字列は pydantic が Unix 時刻として受け付けるので先に弾く
    if not _ISO_DATE_PREFIX.match(text):
        return None

    try:
        parsed = _DATETIME_ADAPTER.validate_python(text)
    except ValidationError:
        return None

    return to_utc_day(parsed)


def week_start(day: date) -> date:
    """day を含む ISO 週の月曜日。"""
    return day - timedelta(days=day.weekday())


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    start = date(year, month, 1)
    if month == 12:
        next_start = date(year + 1, 1, 1)
    else:
        next_start = date(year, month + 1, 1)
    return start, next_start - timedelta(days=1)


def _quarter_bounds(year: int, quarter: int) -> tuple[date, date]:
    first_month = (quarter - 1) * 3 + 1
    start, _ = _month_bounds(year, first_month)
    _, end = _month_bounds(year, first_month + 2)
    return start, end


def current_window(kind: WindowKind, now: Optional[datetime] = None) -> AggregationWindow:
    """
    now を含むウィンドウを返す。

    - WEEK: 月曜〜日曜
    - MONTH: 月初〜月末
    - QUARTER: 四半期の初日〜最終日
    """
    today = normalize_now(now).date()

    if kind == WindowKind.WEEK:
        start = week_start(today)
        return AggregationWindow(kind=kind, start=start, end=start + timedelta(days=6))

    if kind == WindowKind.MONTH:
        start, end = _month_bounds(today.year, today.month)
        return AggregationWindow(kind=kind, start=start, end=end)

    quarter = (today.month - 1) // 3 + 1
    start, end = _quarter_bounds(today.year, quarter)
    return AggregationWindow(kind=kind, start=start, end=end)


def previous_window(window: AggregationWindow) -> AggregationWindow:
    """
    直前の同じ長さ（同じ種別）のウィンドウを返す。

    月・四半期は日数が揃わないので、暦の上で 1 つ前の月・四半期にする。
    """
    if window.kind == WindowKind.WEEK:
        start = window.start - timedelta(days=7)
        return AggregationWindow(kind=window.kind, start=start, end=start + timedelta(days=6))

    last_day = window.start - timedelta(days=1)
    if window.kind == WindowKind.MONTH:
        start, end = _month_bounds(last_day.year, last_day.month)
    else:
        quarter = (last_day.month - 1) // 3 + 1
        start, end = _quarter_bounds(last_day.year, quarter)
    return AggregationWindow(kind=window.kind, start=start, end=end)
