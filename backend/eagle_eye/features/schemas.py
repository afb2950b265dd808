# backend/eagle_eye/features/schemas.py

"""
フィーチャー追跡 API から取得するレコードのスキーマ定義。
"""

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class FeatureRecord(BaseModel):
    """
    競合プロダクトのフィーチャー 1件。

    (company_name, release_date) の一意性は保証されない。
    同じ会社・同じ日付の行が複数あるのが普通で、
    集計側で「リリース」単位に重複排除する。
    """

    id: Union[int, str] = Field(..., description="フィーチャー ID")
    name: str = Field("", description="フィーチャー名")
    summary: Optional[str] = Field(None, description="フィーチャーの要約")
    category: Optional[str] = Field(
        None,
        description="生のカテゴリトークン（ANALYTICS, marketing_suite など表記ゆれあり）",
    )
    release_date: Optional[Union[datetime, date, str]] = Field(
        None,
        description="リリース日時。欠損やパース不能な値もそのまま保持する。",
    )
    company_id: Optional[Union[int, str]] = Field(None, description="会社 ID")
    company_name: str = Field("", description="会社名（リリースの重複排除キー）")
    version: Optional[str] = Field(None, description="バージョン文字列")
    highlights: Optional[Union[List[str], str]] = Field(
        None,
        description="ハイライト（配列 or テキスト）",
    )
