# backend/eagle_eye/notion/__init__.py

"""
Notion リレー用モジュール群。

主な責務:
- OAuth 認可コードをアクセストークンに交換し、プリンシパルごとに保持する
- ダッシュボードのリリース一覧を Notion ページに見出し + テーブルとして書き込む
"""
