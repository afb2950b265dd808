# backend/eagle_eye/utils/__init__.py
"""共通ユーティリティ（環境変数の読み取り、ロギング設定）。"""
