"""Tests for configuration selection and the production secrets gate."""

import pytest

from api.config import (
    DEV_ACCESS_SECRET,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    check_secrets,
    get_config,
)


def test_get_config_by_name():
    assert get_config("testing") is TestingConfig
    assert get_config("prod") is ProductionConfig
    assert get_config("dev") is DevelopmentConfig


def test_default_lifetimes():
    assert TestingConfig.ACCESS_TOKEN_EXPIRES.total_seconds() == 3600
    assert TestingConfig.REFRESH_TOKEN_EXPIRES.days == 7


@pytest.mark.parametrize(
    "access, refresh",
    [
        (DEV_ACCESS_SECRET, "real-refresh"),
        ("same", "same"),
        (None, "real-refresh"),
    ],
)
def test_production_rejects_weak_secrets(access, refresh):
    config = {"JWT_SECRET": access, "JWT_REFRESH_SECRET": refresh, "DATABASE_URL": "postgresql://db"}
    with pytest.raises(RuntimeError):
        check_secrets(config)


def test_production_accepts_distinct_secrets():
    check_secrets({"JWT_SECRET": "a" * 32, "JWT_REFRESH_SECRET": "b" * 32, "DATABASE_URL": "postgresql://db"})


def test_dev_is_not_gated():
    check_secrets({"DEBUG": True, "JWT_SECRET": "x", "JWT_REFRESH_SECRET": "x"})


def test_production_rejects_short_secrets():
    config = {"JWT_SECRET": "a" * 31, "JWT_REFRESH_SECRET": "b" * 32, "DATABASE_URL": "postgresql://db"}
    with pytest.raises(RuntimeError, match="at least 32 bytes"):
        check_secrets(config)


def test_bundled_secrets_are_long_enough():
    for secret in (DEV_ACCESS_SECRET, TestingConfig.JWT_SECRET, TestingConfig.JWT_REFRESH_SECRET):
        assert len(secret.encode()) >= 32
