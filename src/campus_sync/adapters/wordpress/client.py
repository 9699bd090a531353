"""Content source backed by the WordPress REST API."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

import httpx
from pydantic import ValidationError

from campus_sync.adapters.http_resilience import ResilientClient
from campus_sync.config import get_wordpress_config
from campus_sync.config.sync import DEFAULT_PAGE_SIZE
from campus_sync.domain.model import SchoolKey

from .schema import CategoryPayload, ErrorPayload, PostPayload
from .translator import parse_record

if TYPE_CHECKING:
    from collections.abc import Callable

    from campus_sync.config import ResilienceConfig, WordPressConfig
    from campus_sync.domain.ports.fetching import ContentSource, SourceRecord

log = getLogger(__name__)

_TOTAL_PAGES_HEADER = "X-WP-TotalPages"
_POST_FIELDS = "id,slug,title,acf"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class WordPressAPIError(RuntimeError):
    """Raised when the WordPress REST API rejects a request or answers nonsense."""

    def __init__(self, message: str, *, code: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


def _belongs_to(record: SourceRecord, school: SchoolKey) -> bool:
    if record.school_code is None:
        return False
    try:
        return SchoolKey(record.school_code) == school
    except ValueError:
        return False


@dataclass(slots=True)
class WordPressSource:
    """Reads one category of posts per record kind.

    The category of each kind is looked up by slug once per source instance.
    Posts whose custom fields do not validate are logged and skipped; transport
    and API failures propagate.
    """

    config: WordPressConfig = field(default_factory=get_wordpress_config)
    page_size: int = DEFAULT_PAGE_SIZE
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _category_ids: dict[str, int] = field(default_factory=dict, init=False, repr=False)

    async def fetch_records[TRecord: SourceRecord](
        self,
        record_type: type[TRecord],
        *,
        school: SchoolKey | None = None,
    ) -> list[TRecord]:
        slug = self.config.category_slugs[record_type.KIND]
        async with self.client_factory(self.config.resilience) as client:
            category_id = await self._category_id(client, slug)
            posts = await self._fetch_posts(client, category_id)

        records: list[TRecord] = []
        for post in posts:
            try:
                record = parse_record(record_type, post)
            except ValueError:
                log.exception("Skipping %s post %s (%s)", record_type.KIND, post.id, post.label)
                continue
            if school is not None and not _belongs_to(record, school):
                continue
            records.append(record)

        log.debug(
            "Fetched %s %s records from %s posts in category %r",
            len(records),
            record_type.KIND,
            len(posts),
            slug,
        )
        return records

    @property
    def _auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self.config.username, self.config.app_password)

    async def _category_id(self, client: ResilientClient, slug: str) -> int:
        cached = self._category_ids.get(slug)
        if cached is not None:
            return cached

        payload = await self._get_json(
            client, f"{self.config.api_url}/categories", params={"slug": slug}
        )
        if not isinstance(payload, list):
            raise WordPressAPIError(f"Unexpected category listing for {slug!r}")
        categories = [CategoryPayload.model_validate(item) for item in cast(list[Any], payload)]
        match = next((category for category in categories if category.slug == slug), None)
        if match is None:
            raise WordPressAPIError(f"Category {slug!r} not found", code="category_not_found")

        self._category_ids[slug] = match.id
        return match.id

    async def _fetch_posts(self, client: ResilientClient, category_id: int) -> list[PostPayload]:
        posts: list[PostPayload] = []
        page = 1
        while True:
            response = await self._get(
                client,
                f"{self.config.api_url}/posts",
                params={
                    "categories": category_id,
                    "per_page": self.page_size,
                    "page": page,
                    "_fields": _POST_FIELDS,
                },
            )
            payload = response.json()
            if not isinstance(payload, list):
                raise WordPressAPIError("Unexpected post listing payload")
            for item in cast(list[Any], payload):
                try:
                    posts.append(PostPayload.model_validate(item))
                except ValidationError:
                    log.exception("Skipping malformed post in category %s", category_id)

            total_pages = _total_pages(response)
            if page >= total_pages:
                break
            page += 1
        return posts

    async def _get_json(
        self, client: ResilientClient, url: str, *, params: dict[str, str | int]
    ) -> object:
        response = await self._get(client, url, params=params)
        return response.json()

    async def _get(
        self, client: ResilientClient, url: str, *, params: dict[str, str | int]
    ) -> httpx.Response:
        response = await client.get(url, params=params, auth=self._auth)
        if response.is_error:
            _raise_api_error(response)
        return response


def _total_pages(response: httpx.Response) -> int:
    raw = response.headers.get(_TOTAL_PAGES_HEADER)
    if raw is None:
        return 1
    try:
        return max(int(raw), 1)
    except ValueError:
        raise WordPressAPIError(f"Invalid {_TOTAL_PAGES_HEADER} header: {raw!r}") from None


def _raise_api_error(response: httpx.Response) -> None:
    try:
        error = ErrorPayload.model_validate(response.json())
    except ValueError:
        response.raise_for_status()
        raise
    log.error("WordPress API error %s (%s): %s", response.status_code, error.code, error.message)
    raise WordPressAPIError(error.message, code=error.code, status=response.status_code)


if TYPE_CHECKING:
    _source_check: ContentSource = WordPressSource()
