# backend/eagle_eye/main.py

"""
バックエンドアプリケーションのエントリーポイント。

主な責務:
- /analytics/* で競合リリースの集計結果を公開する
- /features/* でオンボーディング用の会社・カテゴリ一覧を中継する
- /api/notion/* で Notion OAuth・同期リレーを公開する
- /health でヘルスチェックを返す
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eagle_eye.analytics.router import router as analytics_router
from eagle_eye.features.router import router as features_router
from eagle_eye.notion.router import router as notion_router
from eagle_eye.notion.token_store import InMemoryTokenStore, TokenStore
from eagle_eye.utils.config import configure_logging, get_server_settings

logger = logging.getLogger(__name__)


def create_app(token_store: Optional[TokenStore] = None) -> FastAPI:
    """
    FastAPI アプリケーションファクトリ。

    - 集計エンドポイント (/analytics/*)
    - フィーチャー API 中継 (/features/*)
    - Notion リレー (/api/notion/*)
    - ヘルスチェックエンドポイント (/health)

    token_store を省略した場合はアプリごとに新しい InMemoryTokenStore を使う。
    ロギングは LOG_LEVEL に従ってここで設定する（uvicorn eagle_eye.main:app 起動でも有効）。
    """
    configure_logging()
    settings = get_server_settings()

    app = FastAPI(title="Eagle Eye Backend")
    app.state.notion_token_store = token_store or InMemoryTokenStore()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ルーター登録
    app.include_router(analytics_router)
    app.include_router(features_router)
    app.include_router(notion_router)

    @app.get("/health", tags=["health"])
    def health_check() -> dict:
        """
        簡易ヘルスチェックエンドポイント。
        モニタリングや動作確認用。
        """
        return {"status": "ok", "message": "Server is running"}

    return app


# uvicorn 実行時のエントリーポイント
app = create_app()


def main() -> None:
    import uvicorn

    settings = get_server_settings()
    logger.info("Backend server starting on port %d", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
