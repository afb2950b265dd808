# backend/eagle_eye/analytics/categories.py

"""
カテゴリトークン・アノマリー種別の表示ラベル変換。

どちらも純粋関数で、どんな文字列を渡しても必ず 1 つの文字列を返す。
"""

import unicodedata
from typing import Dict, Optional

CATEGORY_LABELS: Dict[str, str] = {
    "APPOINTMENTS": "Appointments",
    "ANALYTICS": "Analytics",
    "MARKETING_SUITE": "Marketing Suite",
    "MARKETING": "Marketing",
    "PAYMENTS": "Payments",
    "MOBILE": "Mobile",
    "MEMBERSHIP": "Membership",
    "INTEGRATIONS": "Integrations",
    "OTHER": "Other",
}

ANOMALY_TYPE_LABELS: Dict[str, str] = {
    "spike": "Release Spike",
    "drop": "Activity Drop",
    "trend_change": "Trend Shift",
    "outlier": "Unusual Activity",
    "pattern_break": "Pattern Break",
}

DEFAULT_CATEGORY_LABEL = "Other"
_MAX_PASSES = 8

_CATEGORY_LOOKUP: Dict[str, str] = {key.casefold(): label for key, label in CATEGORY_LABELS.items()}


def _label_once(raw: str) -> str:
    words = unicodedata.normalize("NFKC", raw).replace("_", " ").split()
    if not words:
        return DEFAULT_CATEGORY_LABEL

    label = _CATEGORY_LOOKUP.get("_".join(words).casefold())
    if label is not None:
        return label

    return " ".join(words).capitalize()


def normalize_category(raw: Optional[str]) -> str:
    """
    生のカテゴリトークンを表示用ラベルに変換する。

    1. NFKC 正規化し、アンダースコア・連続空白を区切りとして単語に分け、
       大小文字を無視して固定テーブルを引く
    2. テーブルに無ければ「先頭だけ大文字・残り小文字・単語は空白 1 つで連結」

    大文字化で文字数が変わる文字（ŉ など）があるので、ラベルが
    再変換で変わらなくなるまで繰り返す。収束しなければ "Other" に寄せる。
    None / 空文字も "Other"。
    """
    if raw is None:
        return DEFAULT_CATEGORY_LABEL

    label = _label_once(raw)
    for _ in range(_MAX_PASSES):
        again = _label_once(label)
        if again == label:
            return label
        label = again

    return DEFAULT_CATEGORY_LABEL


def format_anomaly_type(raw: Optional[str]) -> str:
    """
    アノマリー種別（spike / drop など）を表示用ラベルに変換する。
    """
    if not raw:
        return "Pattern Detected"
    return ANOMALY_TYPE_LABELS.get(raw.lower(), raw)
