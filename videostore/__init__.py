"""
Video Store - upload, list and delete videos in an object storage bucket.

This package contains the complete application:
- core: Framework-agnostic naming, pagination and upload staging
- infrastructure: Object storage providers
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
