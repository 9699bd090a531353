from __future__ import annotations

import httpx
import pytest

from campus_sync.config import (
    DEFAULT_CATEGORY_SLUGS,
    ConfigurationError,
    MissingConfigurationError,
    RetryPolicy,
    env_flag,
    env_int,
    get_sync_config,
    get_wordpress_config,
    require_env_var,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "  ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("Yes", True), (" on ", True), ("0", False), ("false", False), ("", True)],
)
def test_env_flag(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
    expected: bool,  # noqa: FBT001
) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", raw)

    assert env_flag("EXAMPLE_FLAG", default=True) is expected


def test_env_flag_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", "maybe")

    with pytest.raises(ConfigurationError, match="boolean"):
        env_flag("EXAMPLE_FLAG", default=False)


def test_env_int_bounds(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EXAMPLE_INT", raising=False)
    assert env_int("EXAMPLE_INT", default=7) == 7

    monkeypatch.setenv("EXAMPLE_INT", "12")
    assert env_int("EXAMPLE_INT", default=7) == 12

    monkeypatch.setenv("EXAMPLE_INT", "0")
    with pytest.raises(ConfigurationError, match=">= 1"):
        env_int("EXAMPLE_INT", default=7, minimum=1)

    monkeypatch.setenv("EXAMPLE_INT", "twelve")
    with pytest.raises(ConfigurationError, match="integer"):
        env_int("EXAMPLE_INT", default=7)


def test_sync_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CAMPUS_SYNC_VERBOSE", "0")
    monkeypatch.setenv("CAMPUS_SYNC_PAGE_SIZE", "25")
    monkeypatch.setenv("CAMPUS_SYNC_CLEANUP_AGE_DAYS", "0")

    config = get_sync_config()

    assert not config.verbose
    assert config.page_size == 25
    assert config.cleanup_age_days == 0
    assert get_sync_config(verbose=True).verbose


def test_wordpress_config_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORDPRESS_BASE_URL", "https://campus.example")
    monkeypatch.delenv("WORDPRESS_USERNAME", raising=False)
    monkeypatch.delenv("WORDPRESS_APP_PASSWORD", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        get_wordpress_config()

    assert "WORDPRESS_APP_PASSWORD, WORDPRESS_USERNAME" in str(exc.value)


def test_wordpress_config_builds_api_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORDPRESS_BASE_URL", " https://campus.example/ ")
    monkeypatch.setenv("WORDPRESS_USERNAME", "sync-bot")
    monkeypatch.setenv("WORDPRESS_APP_PASSWORD", "abcd efgh")

    config = get_wordpress_config()

    assert config.api_url == "https://campus.example/wp-json/wp/v2"
    assert config.resilience.base_url == config.api_url
    assert config.resilience.ratelimit is not None
    assert config.category_slugs == DEFAULT_CATEGORY_SLUGS


def test_retry_policy_retries_transport_failures_only() -> None:
    policy = RetryPolicy()

    assert policy.retry_on_exceptions == (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )
    assert policy.allowed_methods == frozenset({"GET", "HEAD", "OPTIONS"})
