"""
Object storage integration.

Supports AWS S3 and S3-compatible providers (MinIO, Ceph RGW) via boto3.
Includes mock mode for local development without credentials.
"""
