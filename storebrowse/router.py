from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional

from .api import LATEST_REVISION, StoreBrowserError, StoreClient
from .routes import Route, parse_hash
from .views import BucketListingView, BucketView, Container, SearchView, View

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 3

Spawn = Callable[[Coroutine[Any, Any, None]], Any]


class RoutingError(StoreBrowserError):
    pass


class Router:
    """Maps a location hash onto exactly one active view.

    ``set_location`` writes a new location back to the host and returns True
    when the host will deliver a navigation event for it (which re-enters
    ``dispatch``). ``spawn`` schedules a view's render coroutine; its return
    value is handed back from ``dispatch``.
    """

    def __init__(
        self,
        client: StoreClient,
        container: Container,
        set_location: Callable[[str], bool],
        spawn: Optional[Spawn] = None,
    ) -> None:
        self.client = client
        self.container = container
        self._set_location = set_location
        self._spawn = spawn or asyncio.ensure_future
        self._generation = 0
        self.active_view: Optional[View] = None

    @property
    def generation(self) -> int:
        return self._generation

    def dispatch(self, location: str, _depth: int = 0) -> Any:
        route = parse_hash(location)
        logger.debug("dispatch %r -> %r", location, route)
        if not route.is_complete:
            return self._normalize(route, _depth)
        self.close()
        self._generation += 1
        view = self._build_view(route, self._generation)
        self.active_view = view
        logger.debug("rendering %r (generation %d)", view, self._generation)
        return self._spawn(view.render(self.container))

    def _normalize(self, route: Route, depth: int) -> Any:
        if depth >= MAX_REDIRECTS:
            raise RoutingError(f"too many redirects while resolving {route.to_hash()}")
        normalized = route.with_revision(LATEST_REVISION).to_hash()
        if self._set_location(normalized):
            return None
        # no navigation event will follow, so take the transition directly
        return self.dispatch(normalized, depth + 1)

    def navigate(self, location: str) -> Any:
        """Move to `location`, dispatching directly when the host stays silent."""
        if self._set_location(location):
            return None
        return self.dispatch(location)

    def _build_view(self, route: Route, generation: int) -> View:
        def is_current() -> bool:
            return generation == self._generation

        if route.search_term is not None:
            return SearchView(self.client, route.search_term, is_current=is_current)
        if route.bucket_name is None:
            return BucketListingView(self.client, is_current=is_current)
        return BucketView(
            self.client,
            route.bucket_name,
            route.revision_str or LATEST_REVISION,
            route.root_dir,
            navigate=self.navigate,
            is_current=is_current,
        )

    def close(self) -> None:
        view, self.active_view = self.active_view, None
        if view is None:
            return
        on_close = getattr(view, "on_close", None)
        if callable(on_close):
            logger.debug("closing %r", view)
            on_close()
