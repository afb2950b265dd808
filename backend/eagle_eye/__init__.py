# backend/eagle_eye/__init__.py
"""
Eagle Eye backend application package.

This package contains:
- main: FastAPI application entrypoint
- features: feature-tracking API client
- analytics: release deduplication, statistics and anomaly detection
- notion: Notion OAuth / sync relay
"""
