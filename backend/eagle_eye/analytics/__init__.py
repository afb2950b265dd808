# backend/eagle_eye/analytics/__init__.py

"""
競合リリースの集計モジュール群。

主な責務:
- フィーチャーレコードを (会社, UTC 日付) 単位のリリースに重複排除する
- 会社 / カテゴリ / 期間ごとの件数・割合・前期間比を算出する
- 会社ごとの週次リリース数からアノマリーを検出する
"""
