"""Routers package — HTTP endpoint definitions.

Files:
  documents.py   — /api/upload-documents (POST, OPTIONS) and /api/check-env
"""
