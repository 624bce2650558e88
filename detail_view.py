import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from evolution import RelationshipLevel, RelationshipTreeBuilder
from pokeapi import EntityDetail, NotFoundError, PokeApiClient, PokeApiError


LOGGER = logging.getLogger("pokedex.detail")

NO_CHAIN_TEXT = "No evolution chain to show"


@dataclass
class DetailPage:
    detail: EntityDetail
    levels: List[RelationshipLevel] = field(default_factory=list)

    @property
    def has_chain(self) -> bool:
        return bool(self.levels)


def _call_now(fn: Callable[[], None]) -> None:
    fn()


def _pretty_name(name: str) -> str:
    if not name:
        return "—"
    return name.replace("-", " ").title()


class DetailView:
    def __init__(self, client: PokeApiClient, tree_builder: Optional[RelationshipTreeBuilder] = None):
        self.client = client
        self.tree_builder = tree_builder or RelationshipTreeBuilder(client)

    def get_detail(self, pokedex_id: int) -> EntityDetail:
        # NotFoundError propagates; the window shows its not-found body
        return self.client.get_entity(pokedex_id)

    def open(self, pokedex_id: int) -> DetailPage:
        detail = self.get_detail(pokedex_id)
        levels = self.tree_builder.build_tree(detail.name, species_url=detail.species_url)
        LOGGER.debug("detail #%d %s: %d chain levels", detail.id, detail.name, len(levels))
        return DetailPage(detail=detail, levels=levels)

    def load(
        self,
        pokedex_id: int,
        on_page: Callable[[DetailPage], None],
        on_not_found: Callable[[NotFoundError], None],
        on_error: Callable[[PokeApiError], None],
        dispatch: Callable[[Callable[[], None]], None] = _call_now,
    ) -> None:
        """
        Runs open() and hands the outcome to exactly one callback through
        dispatch. Meant to be called off the UI thread.
        """
        try:
            page = self.open(pokedex_id)
        except NotFoundError as exc:
            LOGGER.info("detail #%d not found", pokedex_id)
            dispatch(lambda err=exc: on_not_found(err))
            return
        except PokeApiError as exc:
            LOGGER.error("detail #%d failed: %s", pokedex_id, exc)
            dispatch(lambda err=exc: on_error(err))
            return
        dispatch(lambda: on_page(page))


def render_lines(page: DetailPage) -> List[str]:
    d = page.detail
    lines = [
        f"ID: {d.id}",
        f"Height: {d.height_m:g} m",
        f"Weight: {d.weight_kg:g} kg",
        f"Type: {', '.join(d.types) if d.types else '—'}",
        "",
        "Evolution",
    ]
    if not page.has_chain:
        lines.append(NO_CHAIN_TEXT)
        return lines
    for depth, level in enumerate(page.levels):
        names = " / ".join(_pretty_name(n.species_name) for n in level)
        lines.append(f"  {depth + 1}. {names}")
    return lines
