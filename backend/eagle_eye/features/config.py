# backend/eagle_eye/features/config.py

"""
フィーチャー追跡 API（外部 REST API）接続用の設定値。
"""

from dataclasses import dataclass
from typing import Optional

from eagle_eye.utils.config import get_env, get_env_int


@dataclass(frozen=True)
class FeatureSourceSettings:
    """フィーチャー API 用の設定値コンテナ。"""

    base_url: str
    username: Optional[str]
    password: Optional[str]
    timeout_seconds: int = 15
    fetch_limit: int = 1000


def get_feature_source_settings() -> FeatureSourceSettings:
    """
    環境変数からフィーチャー API 設定を読み込む。

    任意:
      - FEATURE_API_BASE_URL         (デフォルト: http://localhost:8000)
      - FEATURE_API_USERNAME / FEATURE_API_PASSWORD
        （両方そろっている場合のみ Basic 認証ヘッダーを付与する）
      - FEATURE_API_TIMEOUT_SECONDS  (デフォルト: 15)
      - FEATURE_API_FETCH_LIMIT      (デフォルト: 1000)
    """
    base_url = get_env(
        "FEATURE_API_BASE_URL",
        default="http://localhost:8000",
        required=False,
    )

    return FeatureSourceSettings(
        base_url=base_url.rstrip("/"),
        username=get_env("FEATURE_API_USERNAME", required=False),
        password=get_env("FEATURE_API_PASSWORD", required=False),
        timeout_seconds=get_env_int("FEATURE_API_TIMEOUT_SECONDS", default=15),
        fetch_limit=get_env_int("FEATURE_API_FETCH_LIMIT", default=1000),
    )
