"""
S3 Gateway - a thin HTTP facade over S3-compatible object storage.

This package contains the complete application:
- core: Storage facade and domain values (no HTTP, no boto3)
- infrastructure: S3-compatible storage adapters
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
