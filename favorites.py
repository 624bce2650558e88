import json
import logging
import os
from typing import FrozenSet, Iterable, Optional


LOGGER = logging.getLogger("pokedex.favorites")

FAVORITES_SLOT = "favorites"

FavoriteSet = FrozenSet[int]


class MalformedStoreError(ValueError):
    pass


def toggle(pokedex_id: int, current: Iterable[int]) -> FavoriteSet:
    favs = frozenset(int(x) for x in current)
    if pokedex_id in favs:
        return favs - {pokedex_id}
    return favs | {pokedex_id}


class FavoritesStore:
    """
    favorites.json:
    {
      "favorites": [1, 4, 25]
    }
    """

    def __init__(self, path: str, slot: str = FAVORITES_SLOT):
        self.path = path
        self.slot = slot
        self.last_error: Optional[MalformedStoreError] = None

    def load(self) -> FavoriteSet:
        self.last_error = None
        if not os.path.exists(self.path):
            return frozenset()
        try:
            return self._read()
        except MalformedStoreError as exc:
            self.last_error = exc
            LOGGER.warning("favorites store at %s is malformed, starting empty: %s", self.path, exc)
            return frozenset()

    def _read(self) -> FavoriteSet:
        try:
            with open(self.path, "r", encoding="utf-8-sig") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise MalformedStoreError(str(exc)) from exc
        if not isinstance(data, dict) or self.slot not in data:
            raise MalformedStoreError(f"missing '{self.slot}' slot")
        raw = data[self.slot]
        if not isinstance(raw, list):
            raise MalformedStoreError(f"'{self.slot}' is not a JSON array")
        out = set()
        for x in raw:
            # bool is an int subclass; true/false are not ids
            if isinstance(x, bool) or not isinstance(x, int):
                raise MalformedStoreError(f"non-integer id {x!r}")
            out.add(x)
        return frozenset(out)

    def save(self, favorites: Iterable[int]) -> None:
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        payload = {self.slot: sorted({int(x) for x in favorites})}
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        LOGGER.debug("saved %d favorites to %s", len(payload[self.slot]), self.path)
