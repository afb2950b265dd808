# backend/eagle_eye/utils/config.py

"""
環境変数読み取り用のユーティリティ。
Notion リレーとフィード API クライアント、サーバ設定で共通利用する。
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional


class EnvVarMissingError(RuntimeError):
    """必須環境変数が設定されていない場合に投げる例外。"""

    def __init__(self, name: str) -> None:
        super().__init__(f"Required environment variable '{name}' is not set.")
        self.name = name


def get_env(
    name: str,
    default: Optional[str] = None,
    *,
    required: bool = True,
) -> Optional[str]:
    """
    環境変数を取得するヘルパー。

    :param name: 環境変数名
    :param default: デフォルト値（required=False の場合のみ使用）
    :param required: True の場合、未設定なら例外を投げる
    :return: 文字列値
    """
    value = os.getenv(name)

    if value is None or value == "":
        if required:
            raise EnvVarMissingError(name)
        return default

    return value


def get_env_int(name: str, default: int) -> int:
    """
    整数値の環境変数を取得するヘルパー。

    未設定なら default。不正な値が入っていた場合は RuntimeError にする。
    """
    raw = get_env(name, required=False)
    if raw is None:
        return default

    try:
        return int(raw)
    except ValueError as exc:  # noqa: TRY003
        raise RuntimeError(
            f"Invalid integer value for env var {name}: {raw!r}"
        ) from exc


def get_env_list(name: str, default: List[str]) -> List[str]:
    """
    カンマ区切りの環境変数をリストとして取得する。空要素は捨てる。
    """
    raw = get_env(name, required=False)
    if raw is None:
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


def configure_logging() -> None:
    """
    LOG_LEVEL（デフォルト INFO）に従ってルートロガーを設定する。
    """
    level_name = (get_env("LOG_LEVEL", default="INFO", required=False) or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:5174"]


@dataclass(frozen=True)
class ServerSettings:
    """HTTP サーバ（uvicorn / CORS）の設定値。"""

    port: int
    cors_allow_origins: List[str] = field(default_factory=list)


def get_server_settings() -> ServerSettings:
    """
    任意:
      - PORT                (デフォルト: 5000)
      - CORS_ALLOW_ORIGINS  (カンマ区切り。デフォルト: Vite の 5173 / 5174)
    """
    return ServerSettings(
        port=get_env_int("PORT", default=5000),
        cors_allow_origins=get_env_list("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ORIGINS),
    )
