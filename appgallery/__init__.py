"""
Backend package for the app gallery site.

This package provides a FastAPI application whose resources (apps, featured
and event ids, contents, memos, gallery items) are persisted as JSON
documents through a local file, an S3-compatible blob store and a
process-memory fallback.
"""
