"""Business logic layer for drive app.

This package contains all business logic of the storage engine:
- Quota ledger (reserve/release with per-owner row locks)
- Folder tree creation, rename, move and cascading delete
- File upload, download, delete, rename, move and stats
- Public sharing through share tokens

All business logic should be implemented here, separate from
models (data layer) and infrastructure (filesystem).
"""
