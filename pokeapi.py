import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import requests

from settings import POKEAPI_BASE, SPRITE_BASE


LOGGER = logging.getLogger("pokedex.api")

_TRAILING_ID = re.compile(r"/(\d+)/$")


# =========================
# Errors
# =========================
class PokeApiError(Exception):
    pass


class FetchError(PokeApiError):
    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class NotFoundError(FetchError):
    pass


# =========================
# Models
# =========================
class Category(str, Enum):
    NORMAL = "normal"
    FIRE = "fire"
    WATER = "water"
    GRASS = "grass"
    ELECTRIC = "electric"
    ICE = "ice"
    FIGHTING = "fighting"
    POISON = "poison"
    GROUND = "ground"
    PSYCHIC = "psychic"
    ROCK = "rock"
    GHOST = "ghost"
    DRAGON = "dragon"
    DARK = "dark"
    STEEL = "steel"
    FAIRY = "fairy"


def extract_id_from_url(url: str) -> int:
    m = _TRAILING_ID.search(url or "")
    if not m or int(m.group(1)) <= 0:
        raise ValueError(f"url does not end in /<positive id>/: {url!r}")
    return int(m.group(1))


def sprite_url(pokedex_id: int, base: str = SPRITE_BASE) -> str:
    return f"{base.rstrip('/')}/{pokedex_id}.png"


@dataclass(frozen=True)
class EntityRef:
    name: str
    url: str

    @property
    def id(self) -> int:
        return extract_id_from_url(self.url)


@dataclass(frozen=True)
class EntityDetail:
    id: int
    name: str
    height: int
    weight: int
    types: Tuple[str, ...] = field(default_factory=tuple)
    image_url: str = ""
    species_url: str = ""

    @property
    def height_m(self) -> float:
        return self.height / 10

    @property
    def weight_kg(self) -> float:
        return self.weight / 10

    @staticmethod
    def from_payload(data: dict, sprite_base: str = SPRITE_BASE) -> "EntityDetail":
        ordered = sorted(data.get("types", []) or [], key=lambda t: t.get("slot", 99))
        types = tuple(
            (t.get("type", {}) or {}).get("name", "")
            for t in ordered
            if (t.get("type", {}) or {}).get("name")
        )
        pid = int(data["id"])
        species = data.get("species")
        species_url = str(species.get("url", "") or "") if isinstance(species, dict) else ""
        return EntityDetail(
            id=pid,
            name=str(data.get("name", "")),
            height=int(data.get("height", 0) or 0),
            weight=int(data.get("weight", 0) or 0),
            types=types,
            image_url=sprite_url(pid, sprite_base),
            species_url=species_url,
        )


# =========================
# HTTP client
# =========================
class PokeApiClient:
    """
    Read-only PokeAPI client. Category listings (/type/{name}) are not paged
    upstream, so fetch_page returns the whole member list for a category and
    only honours cursor/page_size for the global /pokemon list.
    """

    def __init__(
        self,
        base_url: str = POKEAPI_BASE,
        sprite_base: str = SPRITE_BASE,
        timeout: int = 15,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.sprite_base = sprite_base
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_json(self, url: str, params: Optional[dict] = None) -> dict:
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchError(f"request to {url} failed: {exc}", url=url) from exc
        if r.status_code == 404:
            raise NotFoundError(f"not found: {url}", url=url, status_code=404)
        try:
            r.raise_for_status()
        except requests.HTTPError as exc:
            raise FetchError(f"HTTP {r.status_code} for {url}", url=url, status_code=r.status_code) from exc
        try:
            data = r.json()
        except ValueError as exc:
            raise FetchError(f"invalid JSON from {url}: {exc}", url=url, status_code=r.status_code) from exc
        if not isinstance(data, dict):
            raise FetchError(f"unexpected payload from {url}", url=url, status_code=r.status_code)
        return data

    def fetch_page(self, cursor: int, page_size: int, category: Optional[Category] = None) -> List[EntityRef]:
        if category is not None:
            return self.fetch_category(category)
        if cursor < 0 or page_size <= 0:
            raise ValueError(f"invalid page request cursor={cursor} page_size={page_size}")
        url = f"{self.base_url}/pokemon"
        data = self.get_json(url, params={"limit": page_size, "offset": cursor})
        out = [self._ref(x) for x in data.get("results", []) or []]
        LOGGER.debug("page offset=%d limit=%d -> %d refs", cursor, page_size, len(out))
        return out[:page_size]

    def fetch_category(self, category: Category) -> List[EntityRef]:
        url = f"{self.base_url}/type/{Category(category).value}"
        data = self.get_json(url)
        out = [self._ref(x.get("pokemon", {}) or {}) for x in data.get("pokemon", []) or []]
        LOGGER.debug("category %s -> %d refs", Category(category).value, len(out))
        return out

    def get_entity(self, pokedex_id: int) -> EntityDetail:
        data = self.get_json(f"{self.base_url}/pokemon/{pokedex_id}")
        try:
            return EntityDetail.from_payload(data, self.sprite_base)
        except (KeyError, TypeError, ValueError) as exc:
            raise FetchError(f"malformed pokemon payload for #{pokedex_id}: {exc}") from exc

    def get_species_url(self, name: str) -> str:
        # form names (lycanroc-midday) differ from species names; go through /pokemon
        data = self.get_json(f"{self.base_url}/pokemon/{name}")
        species = data.get("species")
        url = species.get("url", "") if isinstance(species, dict) else ""
        if not url:
            raise FetchError(f"no species reference for {name}", url=f"{self.base_url}/pokemon/{name}")
        return str(url)

    @staticmethod
    def _ref(raw: dict) -> EntityRef:
        return EntityRef(name=str(raw.get("name", "")), url=str(raw.get("url", "")))
