# backend/tests/conftest.py
"""
Pytest configuration for Eagle Eye backend tests.

- Ensures that the project root (backend/) is added to sys.path
  so that `import eagle_eye.*` works correctly in tests.
- Ensures environment variables for tests are set with safe dummy values.
"""

import os
import sys
from pathlib import Path

import pytest


def _ensure_project_root_in_sys_path() -> None:
    # This file is located at: backend/tests/conftest.py
    # parents[1] -> backend/
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)

    if project_root_str not in sys.path:
        # Insert at the beginning so it has priority over site-packages, etc.
        sys.path.insert(0, project_root_str)


def _ensure_test_env_vars() -> None:
    """
    Set dummy environment variables required for tests.

    These values are only for local testing and do NOT contain real secrets.
    In real environments, proper values should be provided via .env or system env.
    """
    os.environ.setdefault("NOTION_CLIENT_ID", "dummy-client-id-for-tests")
    os.environ.setdefault("NOTION_CLIENT_SECRET", "dummy-client-secret-for-tests")
    os.environ.setdefault("NOTION_TARGET_PAGE_ID", "2a4beee2c20b80f08975fcc1540e3d2c")
    os.environ.setdefault("FEATURE_API_BASE_URL", "http://features.test")


_ensure_project_root_in_sys_path()
_ensure_test_env_vars()


@pytest.fixture
def feature_rows():
    """フィーチャー API の生レスポンス相当（2025-01-15 水曜を「今週」とする）。"""
    return [
        {"id": 1, "name": "Online booking", "category": "APPOINTMENTS",
         "release_date": "2025-01-13T10:00:00Z", "company_id": 1, "company_name": "Acme"},
        {"id": 2, "name": "Booking reminders", "category": "appointments",
         "release_date": "2025-01-13T18:00:00Z", "company_id": 1, "company_name": "Acme"},
        {"id": 3, "name": "Revenue dashboard", "category": "ANALYTICS",
         "release_date": "2025-01-14", "company_id": 1, "company_name": "Acme"},
        {"id": 4, "name": "Tap to pay", "category": "PAYMENTS",
         "release_date": "2025-01-15T09:00:00Z", "company_id": 2, "company_name": "Globex"},
        {"id": 5, "name": "Email campaigns", "category": "MARKETING_SUITE",
         "release_date": "2025-01-08", "company_id": 2, "company_name": "Globex"},
        {"id": 6, "name": "Broken row", "category": "OTHER",
         "release_date": "not-a-date", "company_id": 3, "company_name": "Initech"},
        {"id": 7, "name": "No date", "category": "OTHER",
         "release_date": None, "company_id": 3, "company_name": "Initech"},
    ]
