from __future__ import annotations

import pytest
from pydantic import ValidationError

from ringstore.config import RingStoreConfig


_ALL_VARS = (
    "RING_SECRET_NAME",
    "RING_BACKEND",
    "RING_REGION",
    "AWS_REGION",
    "RING_BUCKET",
    "RING_KEY_PREFIX",
    "RING_MAX_AGE_DAYS",
    "RING_HARD_LIMIT",
    "RING_SAFETY_MARGIN",
    "RING_ON_INVALID_ENTRY",
    "RING_ON_MALFORMED",
    "RING_MAX_WRITE_ATTEMPTS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ALL_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_match_secret_store_limits():
    cfg = RingStoreConfig(secret_name="ring")
    assert cfg.backend == "secretsmanager"
    assert cfg.max_age_days == 180
    assert cfg.hard_limit == 25000
    assert cfg.safety_margin == 5000
    assert cfg.warn_threshold == 20000
    assert cfg.on_invalid_entry == "fail"
    assert cfg.on_malformed == "empty"


def test_secret_name_required():
    with pytest.raises(ValidationError):
        RingStoreConfig(secret_name="")


def test_s3_requires_bucket():
    with pytest.raises(ValidationError):
        RingStoreConfig(secret_name="ring", backend="s3")


def test_margin_must_be_below_limit():
    with pytest.raises(ValidationError):
        RingStoreConfig(secret_name="ring", hard_limit=1000, safety_margin=1000)


def test_unknown_policy_rejected():
    with pytest.raises(ValidationError):
        RingStoreConfig(secret_name="ring", on_invalid_entry="ignore")


def test_from_env_missing_secret_name_raises():
    with pytest.raises(RuntimeError):
        RingStoreConfig.from_env()


def test_from_env_reads_and_coerces(monkeypatch):
    monkeypatch.setenv("RING_SECRET_NAME", "dp-keyring")
    monkeypatch.setenv("RING_BACKEND", "s3")
    monkeypatch.setenv("RING_BUCKET", "secrets-bucket")
    monkeypatch.setenv("RING_KEY_PREFIX", "rings/")
    monkeypatch.setenv("AWS_REGION", "eu-north-1")
    monkeypatch.setenv("RING_MAX_AGE_DAYS", "90")
    monkeypatch.setenv("RING_ON_INVALID_ENTRY", "skip")
    monkeypatch.setenv("RING_SAFETY_MARGIN", "")

    cfg = RingStoreConfig.from_env()

    assert cfg.secret_name == "dp-keyring"
    assert cfg.backend == "s3"
    assert cfg.bucket == "secrets-bucket"
    assert cfg.key_prefix == "rings/"
    assert cfg.region_name == "eu-north-1"
    assert cfg.max_age_days == 90
    assert cfg.on_invalid_entry == "skip"
    assert cfg.safety_margin == 5000


def test_from_env_invalid_number_raises(monkeypatch):
    monkeypatch.setenv("RING_SECRET_NAME", "ring")
    monkeypatch.setenv("RING_HARD_LIMIT", "lots")
    with pytest.raises(ValidationError):
        RingStoreConfig.from_env()
