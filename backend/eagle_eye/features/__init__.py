# backend/eagle_eye/features/__init__.py

"""
フィーチャー追跡 API 連携モジュール。

- config: 接続先 URL・認証情報・タイムアウト
- schemas: FeatureRecord
- client: GET /features, /companies, /categories の HTTP クライアント
- router: オンボーディング向けのパススルーエンドポイント
"""

from .client import (  # noqa: F401
    FeatureSourceClient,
    FeatureSourceConnectionError,
    FeatureSourceError,
    FeatureSourceHTTPError,
    FeatureSourceTimeoutError,
)
from .schemas import FeatureRecord  # noqa: F401
