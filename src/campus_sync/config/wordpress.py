"""WordPress content source configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Mapping

WORDPRESS_API_PATH = "/wp-json/wp/v2"
WORDPRESS_TIMEOUT_SECONDS = 20.0

DEFAULT_CATEGORY_SLUGS: Mapping[str, str] = MappingProxyType(
    {
        "school": "school-information",
        "course": "course",
        "schedule": "schedule",
        "personnel": "personnel",
        "client": "client",
    }
)


@dataclass(frozen=True, slots=True)
class WordPressConfig:
    """Holds WordPress REST API configuration values."""

    base_url: str
    username: str
    app_password: str
    resilience: ResilienceConfig
    category_slugs: Mapping[str, str] = field(default_factory=lambda: DEFAULT_CATEGORY_SLUGS)

    @property
    def api_url(self) -> str:
        return self.base_url.rstrip("/") + WORDPRESS_API_PATH


def get_wordpress_config(*, resilience: ResilienceConfig | None = None) -> WordPressConfig:
    values = require_env_vars(
        ("WORDPRESS_BASE_URL", "WORDPRESS_USERNAME", "WORDPRESS_APP_PASSWORD")
    )
    base_url = values["WORDPRESS_BASE_URL"].strip()
    return WordPressConfig(
        base_url=base_url,
        username=values["WORDPRESS_USERNAME"],
        app_password=values["WORDPRESS_APP_PASSWORD"],
        resilience=resilience
        or ResilienceConfig(
            name="wordpress",
            base_url=base_url.rstrip("/") + WORDPRESS_API_PATH,
            timeout_seconds=WORDPRESS_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=8, per_seconds=1.0),
        ),
    )
