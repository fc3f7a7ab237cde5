from __future__ import annotations

import abc
import asyncio
import enum
import logging
from typing import Awaitable, Callable, Optional, Protocol

from .api import FetchFailure, StoreClient
from .listing import (
    BucketListingModel,
    BucketModel,
    SearchModel,
    build_bucket_listing_model,
    build_bucket_model,
    build_search_model,
    revision_target,
)

logger = logging.getLogger(__name__)

REVISION_CHANGED = "revision-changed"

Listener = Callable[[str], None]


class Container(Protocol):
    async def show_loading(self, message: str) -> None: ...

    async def show_error(self, title: str, message: str) -> None: ...

    async def show_bucket_listing(self, model: BucketListingModel) -> None: ...

    async def show_bucket(self, model: BucketModel) -> None: ...

    async def show_search(self, model: SearchModel) -> None: ...

    def add_listener(self, event: str, callback: Listener) -> None: ...

    def remove_listener(self, event: str, callback: Listener) -> None: ...


class ViewState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    RENDERED = "rendered"
    ERRORED = "errored"
    CLOSED = "closed"


async def join_all(*awaitables: Awaitable):
    """Await all, or fail on the first failure and cancel the rest."""
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


class View(abc.ABC):
    error_title = "Error fetching data"
    loading_message = "Loading..."

    def __init__(self, client: StoreClient, is_current: Optional[Callable[[], bool]] = None) -> None:
        self.client = client
        self.state = ViewState.IDLE
        self._is_current = is_current or (lambda: True)

    def _can_write(self) -> bool:
        return self.state is not ViewState.CLOSED and self._is_current()

    async def render(self, container: Container) -> None:
        if not self._can_write():
            return
        self.state = ViewState.LOADING
        await container.show_loading(self.loading_message)
        try:
            model = await self._load()
        except FetchFailure as exc:
            if not self._can_write():
                logger.debug("discarding stale failure for %r", self)
                return
            self.state = ViewState.ERRORED
            await container.show_error(self.error_title, exc.body)
            return
        if not self._can_write():
            logger.debug("discarding stale render for %r", self)
            return
        self.state = ViewState.RENDERED
        await self._show(container, model)

    @abc.abstractmethod
    async def _load(self):
        """Fetch and build the render model; raise FetchFailure on failure."""

    @abc.abstractmethod
    async def _show(self, container: Container, model) -> None:
        """Hand the model to the container and attach listeners."""

    def on_close(self) -> None:
        self.state = ViewState.CLOSED


class BucketListingView(View):
    error_title = "Error fetching buckets data"
    loading_message = "Loading buckets..."

    async def _load(self) -> BucketListingModel:
        return build_bucket_listing_model(await self.client.list_buckets())

    async def _show(self, container: Container, model: BucketListingModel) -> None:
        await container.show_bucket_listing(model)

    def __repr__(self) -> str:
        return "BucketListingView()"


class BucketView(View):
    error_title = "Error fetching bucket data"

    def __init__(
        self,
        client: StoreClient,
        bucket_name: str,
        revision_str: str,
        root_dir: str = "",
        navigate: Optional[Callable[[str], object]] = None,
        is_current: Optional[Callable[[], bool]] = None,
    ) -> None:
        super().__init__(client, is_current=is_current)
        self.bucket_name = bucket_name
        self.revision_str = revision_str
        self.root_dir = root_dir
        self._navigate = navigate
        self._container: Optional[Container] = None
        self.loading_message = f"Loading {bucket_name}..."

    async def _load(self) -> BucketModel:
        bucket, listing = await join_all(
            self.client.get_bucket(self.bucket_name),
            self.client.get_dir_listing(self.bucket_name, self.revision_str, self.root_dir),
        )
        return build_bucket_model(
            self.bucket_name, bucket, listing, self.revision_str, self.root_dir
        )

    async def _show(self, container: Container, model: BucketModel) -> None:
        # attach before the first await so a close during mounting still detaches it
        self._container = container
        container.add_listener(REVISION_CHANGED, self._on_revision_changed)
        await container.show_bucket(model)

    def _on_revision_changed(self, value: str) -> None:
        if not value or value == self.revision_str or self._navigate is None:
            return
        self._navigate(revision_target(self.bucket_name, value, self.root_dir))

    def on_close(self) -> None:
        super().on_close()
        container, self._container = self._container, None
        if container is not None:
            container.remove_listener(REVISION_CHANGED, self._on_revision_changed)

    def __repr__(self) -> str:
        return (
            f"BucketView({self.bucket_name!r}, {self.revision_str!r}, {self.root_dir!r})"
        )


class SearchView(View):
    error_title = "Error searching the store"

    def __init__(
        self,
        client: StoreClient,
        term: str,
        is_current: Optional[Callable[[], bool]] = None,
    ) -> None:
        super().__init__(client, is_current=is_current)
        self.term = term
        self.loading_message = f"Searching for {term!r}..."

    async def _load(self) -> SearchModel:
        if not self.term.strip():
            raise FetchFailure("no search term specified")
        return build_search_model(self.term, await self.client.search(self.term))

    async def _show(self, container: Container, model: SearchModel) -> None:
        await container.show_search(model)

    def __repr__(self) -> str:
        return f"SearchView({self.term!r})"
