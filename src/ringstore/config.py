from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


# Environment variable names for convenience configuration
ENV_SECRET_NAME = "RING_SECRET_NAME"
ENV_BACKEND = "RING_BACKEND"
ENV_REGION = "RING_REGION"
ENV_BUCKET = "RING_BUCKET"
ENV_KEY_PREFIX = "RING_KEY_PREFIX"
ENV_MAX_AGE_DAYS = "RING_MAX_AGE_DAYS"
ENV_HARD_LIMIT = "RING_HARD_LIMIT"
ENV_SAFETY_MARGIN = "RING_SAFETY_MARGIN"
ENV_ON_INVALID_ENTRY = "RING_ON_INVALID_ENTRY"
ENV_ON_MALFORMED = "RING_ON_MALFORMED"
ENV_MAX_WRITE_ATTEMPTS = "RING_MAX_WRITE_ATTEMPTS"

FALLBACK_ENV_REGION = "AWS_REGION"


class RingStoreConfig(BaseModel):
    """
    Settings for one key ring persisted as a single secret.

    Fields
    - secret_name: name of the secret holding the encoded ring.
    - backend: which secret service holds it ("secretsmanager" or "s3").
    - region_name / bucket / key_prefix: backend location; `bucket` is required for S3.
    - max_age_days: retention window for key and revocation entries.
    - hard_limit / safety_margin: the capacity guard warns once the encoded
      ring is longer than `hard_limit - safety_margin` characters.
    - on_invalid_entry: "fail" aborts a read on a key/revocation without a
      usable date, "skip" drops just that entry.
    - on_malformed: "empty" treats an undecodable secret as no ring at all,
      "raise" surfaces `MalformedBlob` to the caller.
    - max_write_attempts: fetch-append-write attempts when the backend
      supports conditional writes.
    """

    secret_name: str = Field(min_length=1)
    backend: Literal["secretsmanager", "s3"] = "secretsmanager"
    region_name: Optional[str] = None
    bucket: Optional[str] = None
    key_prefix: str = ""
    max_age_days: int = Field(default=180, ge=0)
    hard_limit: int = Field(default=25000, gt=0)
    safety_margin: int = Field(default=5000, ge=0)
    on_invalid_entry: Literal["fail", "skip"] = "fail"
    on_malformed: Literal["empty", "raise"] = "empty"
    max_write_attempts: int = Field(default=3, ge=1)

    @model_validator(mode="after")
    def _check_consistency(self) -> "RingStoreConfig":
        if self.safety_margin >= self.hard_limit:
            raise ValueError("safety_margin must be smaller than hard_limit")
        if self.backend == "s3" and not self.bucket:
            raise ValueError("bucket is required for the s3 backend")
        return self

    @property
    def warn_threshold(self) -> int:
        return self.hard_limit - self.safety_margin

    @classmethod
    def from_env(cls) -> "RingStoreConfig":
        secret_name = os.environ.get(ENV_SECRET_NAME)
        if not secret_name:
            raise RuntimeError(
                f"Missing required environment variables for key ring store: {ENV_SECRET_NAME}"
            )

        raw = {
            "secret_name": secret_name,
            "backend": os.environ.get(ENV_BACKEND),
            "region_name": os.environ.get(ENV_REGION) or os.environ.get(FALLBACK_ENV_REGION),
            "bucket": os.environ.get(ENV_BUCKET),
            "key_prefix": os.environ.get(ENV_KEY_PREFIX),
            "max_age_days": os.environ.get(ENV_MAX_AGE_DAYS),
            "hard_limit": os.environ.get(ENV_HARD_LIMIT),
            "safety_margin": os.environ.get(ENV_SAFETY_MARGIN),
            "on_invalid_entry": os.environ.get(ENV_ON_INVALID_ENTRY),
            "on_malformed": os.environ.get(ENV_ON_MALFORMED),
            "max_write_attempts": os.environ.get(ENV_MAX_WRITE_ATTEMPTS),
        }
        # Unset or empty variables fall back to the model defaults
        return cls.model_validate({k: v for k, v in raw.items() if v not in (None, "")})
