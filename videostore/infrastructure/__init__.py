"""
Infrastructure layer - external service integrations.

- storage: Object storage (GCS, S3-compatible, in-memory)

These wrappers translate between provider SDK formats and our domain models.
"""
