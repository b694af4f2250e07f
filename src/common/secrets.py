from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Union
from uuid import uuid4

import boto3
from botocore.exceptions import ClientError


DEFAULT_CONTENT_TYPE = "text/plain"

_NOT_FOUND_CODES = ("ResourceNotFoundException", "NoSuchKey", "404")
_PRECONDITION_CODES = ("PreconditionFailed", "412", "ConditionalRequestConflict")


class SecretNotFoundError(KeyError):
    """Raised by `get` when the named secret does not exist yet."""


class OptimisticLockError(RuntimeError):
    """Raised when a version precondition fails during a conditional write."""


@dataclass(frozen=True)
class SecretValue:
    # bytes when the store hands back an undecoded body (S3)
    value: Union[str, bytes]
    version: Optional[str] = None


class SecretService(Protocol):
    """Opaque key/value secret store holding one text blob per name."""

    supports_conditional_writes: bool

    def get(self, name: str) -> SecretValue: ...

    def set(
        self,
        name: str,
        value: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        if_version: Optional[str] = None,
        create_only: bool = False,
    ) -> Optional[str]: ...


def _error_code(exc: ClientError) -> Optional[str]:
    return exc.response.get("Error", {}).get("Code")


class SecretsManagerSecretService:
    """
    AWS Secrets Manager backend.

    - `get` returns the current `SecretString` and its `VersionId`.
    - `set` upserts: `put_secret_value`, or `create_secret` the first time.
    - Secrets Manager has no compare-and-swap on secret values, so writes
      are last-writer-wins and `if_version`/`create_only` are ignored.
    """

    supports_conditional_writes = False

    def __init__(self, *, client: Optional[object] = None, region_name: Optional[str] = None) -> None:
        self._client = client or boto3.client("secretsmanager", region_name=region_name)

    def get(self, name: str) -> SecretValue:
        try:
            resp = self._client.get_secret_value(SecretId=name)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise SecretNotFoundError(name) from e
            raise

        value = resp.get("SecretString")
        if not value:
            # binary-only or empty secret: nothing we wrote
            raise SecretNotFoundError(name)
        return SecretValue(value=value, version=resp.get("VersionId"))

    def set(
        self,
        name: str,
        value: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        if_version: Optional[str] = None,
        create_only: bool = False,
    ) -> Optional[str]:
        try:
            resp = self._client.put_secret_value(SecretId=name, SecretString=value)
        except ClientError as e:
            if _error_code(e) not in _NOT_FOUND_CODES:
                raise
            resp = self._client.create_secret(
                Name=name,
                SecretString=value,
                Tags=[{"Key": "ContentType", "Value": content_type}],
            )
        return resp.get("VersionId")


class S3SecretService:
    """
    S3-backed secret store: one object per secret name, ETag as version.

    Conditional writes
    - `create_only=True` uploads with `IfNoneMatch="*"`, so it fails if another
      writer created the object first.
    - `if_version=<etag>` uploads to a temporary key, then COPIES over the
      destination with an `IfMatch` precondition on the current ETag.
    Either precondition failing raises `OptimisticLockError`.
    """

    supports_conditional_writes = True

    def __init__(
        self,
        *,
        bucket: str,
        key_prefix: str = "",
        s3: Optional[object] = None,
        region_name: Optional[str] = None,
    ) -> None:
        if not bucket:
            raise ValueError("bucket is required")
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._bucket = bucket
        self._prefix = key_prefix

    def _key(self, name: str) -> str:
        return f"{self._prefix}{name}"

    def get(self, name: str) -> SecretValue:
        try:
            resp = self._s3.get_object(Bucket=self._bucket, Key=self._key(name))
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise SecretNotFoundError(name) from e
            raise

        # Left as bytes; a non-UTF-8 body is a malformed ring, not a transport error
        return SecretValue(value=resp["Body"].read(), version=resp.get("ETag"))

    def set(
        self,
        name: str,
        value: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        if_version: Optional[str] = None,
        create_only: bool = False,
    ) -> Optional[str]:
        key = self._key(name)
        body = value.encode("utf-8")

        if if_version is None:
            extra = {"IfNoneMatch": "*"} if create_only else {}
            try:
                resp = self._s3.put_object(
                    Bucket=self._bucket, Key=key, Body=body, ContentType=content_type, **extra
                )
            except ClientError as e:
                if create_only and _error_code(e) in _PRECONDITION_CODES:
                    raise OptimisticLockError(f"s3://{self._bucket}/{key} already exists") from e
                raise
            return resp.get("ETag")

        temp_key = f"{key}.tmp-{uuid4().hex}"
        self._s3.put_object(Bucket=self._bucket, Key=temp_key, Body=body, ContentType=content_type)
        try:
            resp = self._s3.copy_object(
                Bucket=self._bucket,
                Key=key,
                CopySource={"Bucket": self._bucket, "Key": temp_key},
                IfMatch=if_version,
                MetadataDirective="COPY",
            )
        except ClientError as e:
            if _error_code(e) in _PRECONDITION_CODES:
                raise OptimisticLockError(f"ETag mismatch for s3://{self._bucket}/{key}") from e
            raise
        finally:
            try:
                self._s3.delete_object(Bucket=self._bucket, Key=temp_key)
            except ClientError:
                pass

        # copy_object nests the new ETag under CopyObjectResult
        result = resp.get("CopyObjectResult") or resp
        return result.get("ETag")


def create_secret_service(config, *, client: Optional[object] = None) -> SecretService:
    """Build the secret service named by `config.backend`."""
    if config.backend == "s3":
        return S3SecretService(
            bucket=config.bucket,
            key_prefix=config.key_prefix,
            s3=client,
            region_name=config.region_name,
        )
    if config.backend == "secretsmanager":
        return SecretsManagerSecretService(client=client, region_name=config.region_name)
    raise ValueError(f"Unknown secret backend '{config.backend}'")


__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "OptimisticLockError",
    "S3SecretService",
    "SecretNotFoundError",
    "SecretService",
    "SecretValue",
    "SecretsManagerSecretService",
    "create_secret_service",
]
