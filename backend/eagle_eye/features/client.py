# backend/eagle_eye/features/client.py

"""
フィーチャー追跡 API との通信を担当するクライアントモジュール。
"""

import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import FeatureSourceSettings, get_feature_source_settings
from .schemas import FeatureRecord

logger = logging.getLogger(__name__)


class FeatureSourceError(RuntimeError):
    """フィーチャー API クライアント全般の基底例外。"""


class FeatureSourceHTTPError(FeatureSourceError):
    """HTTP ステータスコードがエラー、またはレスポンス形式が想定外だった場合の例外。"""

    def __init__(self, status_code: int, body: Any | None = None) -> None:
        super().__init__(f"Feature API error: status_code={status_code} body={body!r}")
        self.status_code = status_code
        self.body = body


class FeatureSourceTimeoutError(FeatureSourceError):
    """タイムアウト時の例外。"""


class FeatureSourceConnectionError(FeatureSourceError):
    """接続エラー時の例外。"""


class FeatureSourceClient:
    """
    フィーチャー追跡 API の薄いラッパークライアント。

    - GET /features?skip=&limit=
    - GET /companies?skip=0&limit=100
    - GET /categories

    リクエストごとに httpx.Client を開いて閉じる。呼び出し側が途中で
    いなくなった場合も接続は with ブロックの終わりで必ず破棄される。
    """

    def __init__(self, settings: Optional[FeatureSourceSettings] = None) -> None:
        self._settings = settings or get_feature_source_settings()

    @property
    def fetch_limit(self) -> int:
        return self._settings.fetch_limit

    def _build_headers(self) -> Dict[str, str]:
        """
        API 呼び出しに使うヘッダーを構築する。

        Basic 認証は設定から組み立てる（ソースコードに固定値を埋め込まない）。
        """
        headers = {"Accept": "application/json"}
        if self._settings.username and self._settings.password:
            raw = f"{self._settings.username}:{self._settings.password}".encode("utf-8")
            headers["Authorization"] = "Basic " + base64.b64encode(raw).decode("ascii")
        return headers

    def _get_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        url = f"{self._settings.base_url}{path}"

        try:
            with httpx.Client(timeout=self._settings.timeout_seconds) as client:
                response = client.get(url, headers=self._build_headers(), params=params)
        except httpx.TimeoutException as exc:
            raise FeatureSourceTimeoutError(
                f"Feature API timed out after {self._settings.timeout_seconds}s: {path}"
            ) from exc
        except httpx.RequestError as exc:
            raise FeatureSourceConnectionError(f"Failed to call feature API: {exc}") from exc

        if response.status_code // 100 != 2:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            raise FeatureSourceHTTPError(status_code=response.status_code, body=body)

        try:
            data = response.json()
        except ValueError as exc:
            raise FeatureSourceHTTPError(
                status_code=response.status_code,
                body=response.text,
            ) from exc

        if not isinstance(data, list):
            raise FeatureSourceHTTPError(
                status_code=response.status_code,
                body="Unexpected response format: expected a JSON array.",
            )

        return data

    def list_features(self, skip: int = 0, limit: Optional[int] = None) -> List[FeatureRecord]:
        """
        フィーチャー一覧を取得し FeatureRecord のリストに変換して返す。

        スキーマに合わない行（id 欠損など）は警告ログを出してスキップする。
        """
        params = {"skip": skip, "limit": limit if limit is not None else self.fetch_limit}
        raw_rows = self._get_list("/features", params=params)

        records: List[FeatureRecord] = []
        for row in raw_rows:
            if not isinstance(row, dict):
                logger.warning("Skipping non-object feature row: %r", row)
                continue
            try:
                records.append(FeatureRecord.model_validate(row))
            except ValueError as exc:
                logger.warning("Skipping malformed feature row id=%s: %s", row.get("id"), exc)

        logger.info("Fetched %d feature records (skip=%d)", len(records), skip)
        return records

    def list_companies(self) -> List[Dict[str, Any]]:
        """オンボーディング用の会社一覧（生の JSON）を返す。"""
        return self._get_list("/companies", params={"skip": 0, "limit": 100})

    def list_categories(self) -> List[Dict[str, Any]]:
        """オンボーディング用のカテゴリ一覧（生の JSON）を返す。"""
        return self._get_list("/categories")
