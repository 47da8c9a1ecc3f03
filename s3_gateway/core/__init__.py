"""
Core storage logic.

This module is framework-agnostic - it doesn't import FastAPI or boto3.
The facade talks to storage through a Protocol, so it can be tested
against the in-memory client and run against any S3-compatible backend.
"""
