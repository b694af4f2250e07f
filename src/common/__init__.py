"""
Common utilities for the key ring store.

Modules:
- secrets: secret-service adapters (AWS Secrets Manager, S3) and factory
"""

__all__ = [
    "secrets",
]
