"""Shared fixtures for WordPress adapter tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from campus_sync.adapters.wordpress.schema import PostPayload
from campus_sync.config import ResilienceConfig, RetryPolicy, WordPressConfig

WordPressPost = dict[str, Any]
FIXTURES = Path("tests/data/wordpress")


def _load_posts() -> dict[str, list[WordPressPost]]:
    return json.loads((FIXTURES / "posts.json").read_text())


@pytest.fixture
def post_payloads() -> dict[str, list[WordPressPost]]:
    return _load_posts()


@pytest.fixture
def posts(post_payloads: dict[str, list[WordPressPost]]) -> dict[str, list[PostPayload]]:
    return {
        kind: [PostPayload.model_validate(item) for item in items]
        for kind, items in post_payloads.items()
    }


@pytest.fixture
def wordpress_config() -> WordPressConfig:
    return WordPressConfig(
        base_url="https://campus.example/",
        username="sync-bot",
        app_password="abcd efgh ijkl",
        resilience=ResilienceConfig(name="wordpress-test", retry=RetryPolicy(total=0)),
    )
