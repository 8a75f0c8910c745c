"""
Backend package for the advent calendar service.

This package provides a FastAPI application with key-value, database,
storage, auth and push abstractions, plus the photo sidecar maintenance
helpers used by the operator scripts.
"""
