"""Infrastructure layer for drive app.

This package contains integrations with external systems:
- Filesystem storage backend (owner-scoped placement)
- Checksums, generated names and name validation

Keep infrastructure concerns separate from business logic.
"""
