# backend/eagle_eye/analytics/schemas.py

"""
集計（リリース重複排除・統計スナップショット・アノマリー）用のスキーマ定義。

ここで定義するモデルはすべてリクエストごとに生成して捨てる一時オブジェクトで、
永続化はしない。
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class WindowKind(str, Enum):
    """
    集計ウィンドウの種別。

    - WEEK: "now" を含む ISO 週（月曜〜日曜）
    - MONTH: "now" を含む暦月
    - QUARTER: "now" を含む四半期
    """

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


class AggregationWindow(BaseModel):
    """両端を含む UTC 暦日の区間 [start, end]。"""

    kind: WindowKind
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class SkippedRecord(BaseModel):
    """release_date が欠損・パース不能で集計から除外したレコード。"""

    id: Optional[str] = Field(None, description="フィーチャー ID（文字列化済み）")
    company_name: str = Field("", description="会社名")
    raw_release_date: Optional[str] = Field(None, description="元の release_date 値")
    reason: str = Field(..., description="除外理由（missing_release_date / unparsable_release_date）")


class CompanyReleaseStats(BaseModel):
    """
    1 社分の集計結果。

    total_releases は (company_name, UTC 日付) の異なる組の数なので、
    常に total_features 以下になる。
    """

    total_features: int = 0
    total_releases: int = 0
    release_days: List[date] = Field(default_factory=list)


class GroupingResult(BaseModel):
    """group_releases の戻り値。集計結果と除外レコードを両方返す。"""

    grouped: Dict[str, CompanyReleaseStats] = Field(default_factory=dict)
    skipped: List[SkippedRecord] = Field(default_factory=list)

    @property
    def total_releases(self) -> int:
        return sum(stats.total_releases for stats in self.grouped.values())

    @property
    def total_features(self) -> int:
        return sum(stats.total_features for stats in self.grouped.values())


class CompanyShare(BaseModel):
    company_name: str
    total_features: int
    total_releases: int
    percentage: int = Field(..., description="全リリースに占める割合（整数 %）")


class CategoryShare(BaseModel):
    category: str
    releases: int
    percentage: int


class WeeklyPoint(BaseModel):
    """週次リリース推移チャートの 1 点。"""

    week_start: date
    week_end: date
    label: str = Field(..., description="表示用ラベル（例: 'Jan 06'）")
    releases: int


class StatisticsSnapshot(BaseModel):
    """
    /analytics/summary のレスポンス。

    trend は前ウィンドウのリリース数が 0 のとき None（比較対象なし）。
    """

    window: AggregationWindow
    previous_window: AggregationWindow
    total_releases: int
    total_features: int
    previous_total_releases: int
    trend: Optional[str] = None
    most_active_company: Optional[str] = None
    top_category: Optional[str] = None
    avg_per_week: float = 0.0
    companies: List[CompanyShare] = Field(default_factory=list)
    categories: List[CategoryShare] = Field(default_factory=list)
    weekly_series: List[WeeklyPoint] = Field(default_factory=list)
    anomalies: List["Anomaly"] = Field(default_factory=list)
    skipped: List[SkippedRecord] = Field(default_factory=list)
    generated_at: datetime


class AllTimeInsights(BaseModel):
    """/analytics/alltime のレスポンス。"""

    total_releases: int
    total_features: int
    total_companies: int
    most_active_company: Optional[str] = None
    top_category: Optional[str] = None
    avg_per_week: float = 0.0
    first_release: Optional[date] = None
    last_release: Optional[date] = None
    companies: List[CompanyShare] = Field(default_factory=list)
    categories: List[CategoryShare] = Field(default_factory=list)
    skipped: List[SkippedRecord] = Field(default_factory=list)


class AnomalySeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ExpectedRange(BaseModel):
    min: float
    max: float


class Anomaly(BaseModel):
    """ダッシュボードのアノマリーカード 1 枚分。"""

    anomaly_type: str = Field(..., description="spike / drop")
    label: str = Field(..., description="表示用ラベル（Release Spike など）")
    description: str
    severity: AnomalySeverity
    affected_entity: str
    metric_value: float
    expected_range: ExpectedRange
    recommendation: Optional[str] = None


class AnomalyReport(BaseModel):
    anomalies: List[Anomaly]
    count: int
    weeks: int


class WeeklyTrendResponse(BaseModel):
    series: List[WeeklyPoint]
    weeks: int


StatisticsSnapshot.model_rebuild()
