import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Union

from favorites import FavoriteSet, FavoritesStore, toggle
from pokeapi import Category, EntityDetail, EntityRef, FetchError, PokeApiClient


LOGGER = logging.getLogger("pokedex.catalog")

DEFAULT_PAGE_SIZE = 20

VisibleItem = Union[EntityRef, EntityDetail]


# =========================
# View state
# =========================
@dataclass(frozen=True)
class FetchTicket:
    generation: int
    cursor: int
    page_size: int
    category: Optional[Category]
    append: bool


@dataclass
class ViewState:
    """
    Catalog list state. Every fetch is issued through a FetchTicket stamped
    with the current generation; a result is applied only while that
    generation is still current, so a late page for an old filter is dropped.
    """

    page_size: int = DEFAULT_PAGE_SIZE
    loaded_entities: List[EntityRef] = field(default_factory=list)
    cursor: int = 0
    active_category: Optional[Category] = None
    favorites_only: bool = False
    loading: bool = False
    generation: int = 0
    last_error: Optional[Exception] = None

    def _issue(self, append: bool) -> FetchTicket:
        self.generation += 1
        self.loading = True
        self.last_error = None
        return FetchTicket(
            generation=self.generation,
            cursor=self.cursor,
            page_size=self.page_size,
            category=self.active_category,
            append=append,
        )

    def start(self) -> FetchTicket:
        return self.select_category(None)

    def select_category(self, category: Optional[Category]) -> FetchTicket:
        self.active_category = Category(category) if category is not None else None
        self.cursor = 0
        self.loaded_entities = []
        return self._issue(append=False)

    def clear_category(self) -> FetchTicket:
        return self.select_category(None)

    def can_load_more(self) -> bool:
        return self.active_category is None and not self.favorites_only and not self.loading

    def load_more(self) -> Optional[FetchTicket]:
        if not self.can_load_more():
            return None
        self.cursor += self.page_size
        return self._issue(append=True)

    def toggle_favorites_only(self) -> bool:
        self.favorites_only = not self.favorites_only
        return self.favorites_only

    def is_current(self, ticket: FetchTicket) -> bool:
        return (
            ticket.generation == self.generation
            and ticket.cursor == self.cursor
            and ticket.category == self.active_category
        )

    def apply_result(self, ticket: FetchTicket, refs: Iterable[EntityRef]) -> bool:
        if not self.is_current(ticket):
            LOGGER.debug("dropping stale page gen=%d (current %d)", ticket.generation, self.generation)
            return False
        if ticket.append:
            self.loaded_entities = self.loaded_entities + list(refs)
        else:
            self.loaded_entities = list(refs)
        self.loading = False
        return True

    def apply_failure(self, ticket: FetchTicket, exc: Exception) -> bool:
        if not self.is_current(ticket):
            return False
        if ticket.append:
            # the page never arrived; let the next load_more ask for it again
            self.cursor = max(0, ticket.cursor - ticket.page_size)
        self.loading = False
        self.last_error = exc
        return True


# =========================
# Display projection
# =========================
def visible_list(
    state: ViewState,
    favorites: Iterable[int],
    get_detail: Callable[[int], EntityDetail],
    max_workers: int = 8,
) -> List[VisibleItem]:
    if not state.favorites_only:
        return list(state.loaded_entities)

    ids = sorted({int(x) for x in favorites})
    if not ids:
        return []
    by_id: Dict[int, EntityDetail] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(ids)))) as executor:
        futures = {executor.submit(get_detail, pid): pid for pid in ids}
        for fut in as_completed(futures):
            pid = futures[fut]
            try:
                by_id[pid] = fut.result()
            except FetchError as exc:
                LOGGER.debug("favorite #%d dropped from projection: %s", pid, exc)
    return [by_id[pid] for pid in ids if pid in by_id]


# =========================
# Controller
# =========================
def _spawn(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True).start()


def _call_now(fn: Callable[[], None]) -> None:
    fn()


class CatalogController:
    """
    Drives ViewState from user events. Fetches run through run_async (a
    worker thread by default) and results come back through dispatch, which
    the UI points at its own event loop.
    """

    def __init__(
        self,
        client: PokeApiClient,
        store: FavoritesStore,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_workers: int = 8,
        run_async: Callable[[Callable[[], None]], None] = _spawn,
        dispatch: Callable[[Callable[[], None]], None] = _call_now,
        on_change: Optional[Callable[["CatalogController"], None]] = None,
    ):
        self.client = client
        self.store = store
        self.max_workers = max_workers
        self.run_async = run_async
        self.dispatch = dispatch
        self.on_change = on_change
        self.state = ViewState(page_size=page_size)
        self.favorites: FavoriteSet = frozenset()
        self.visible: List[VisibleItem] = []
        self.projecting: bool = False
        self._projection_generation: int = 0

    # ---------- Events ----------
    def start(self) -> None:
        self.favorites = self.store.load()
        self._fetch(self.state.start())

    def select_category(self, category: Optional[Category]) -> None:
        self._fetch(self.state.select_category(category))

    def clear_category(self) -> None:
        self._fetch(self.state.clear_category())

    def load_more(self) -> bool:
        ticket = self.state.load_more()
        if ticket is None:
            return False
        self._fetch(ticket)
        return True

    def toggle_favorites_only(self) -> None:
        self.state.toggle_favorites_only()
        self._refresh_visible()

    def toggle_favorite(self, pokedex_id: int) -> FavoriteSet:
        updated = toggle(pokedex_id, self.favorites)
        # persist first so a toggle is never only in memory
        self.store.save(updated)
        self.favorites = updated
        if self.state.favorites_only:
            self._refresh_visible()
        else:
            self._notify()
        return updated

    def is_favorite(self, pokedex_id: int) -> bool:
        return pokedex_id in self.favorites

    # ---------- Fetching ----------
    def _fetch(self, ticket: FetchTicket) -> None:
        self._refresh_visible()

        def task():
            try:
                refs = self.client.fetch_page(ticket.cursor, ticket.page_size, ticket.category)
            except FetchError as exc:
                LOGGER.error("catalog fetch failed (cursor=%d category=%s): %s", ticket.cursor, ticket.category, exc)
                self.dispatch(lambda err=exc: self._on_failure(ticket, err))
                return
            self.dispatch(lambda: self._on_result(ticket, refs))

        self.run_async(task)

    def _on_result(self, ticket: FetchTicket, refs: List[EntityRef]) -> None:
        if self.state.apply_result(ticket, refs):
            self._refresh_visible()

    def _on_failure(self, ticket: FetchTicket, exc: Exception) -> None:
        if self.state.apply_failure(ticket, exc):
            self._notify()

    def _refresh_visible(self) -> None:
        self._projection_generation += 1
        if not self.state.favorites_only:
            self.visible = list(self.state.loaded_entities)
            self.projecting = False
            self._notify()
            return

        gen = self._projection_generation
        favorites = self.favorites
        snapshot = ViewState(favorites_only=True)
        self.projecting = True
        self._notify()

        def task():
            items = visible_list(snapshot, favorites, self.client.get_entity, self.max_workers)

            def apply():
                if gen != self._projection_generation:
                    return
                self.visible = items
                self.projecting = False
                self._notify()

            self.dispatch(apply)

        self.run_async(task)

    def _notify(self) -> None:
        if self.on_change:
            self.on_change(self)
