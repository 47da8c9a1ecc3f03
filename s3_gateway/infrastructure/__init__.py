"""
Infrastructure layer - external service integrations.

- storage: S3-compatible object storage (boto3) and an in-memory mock

These wrappers translate between provider responses and our domain errors.
"""
