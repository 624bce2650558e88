import json
from typing import Dict, List, Optional

import pytest
import requests

from pokeapi import PokeApiClient
from favorites import FavoritesStore


BASE = "https://pokeapi.test/api/v2"
SPRITES = "https://sprites.test/pokemon"
TOTAL_POKEMON = 45

NAMES = {
    1: "bulbasaur", 2: "ivysaur", 3: "venusaur", 4: "charmander", 5: "charmeleon",
    6: "charizard", 25: "pikachu", 26: "raichu", 37: "vulpix", 38: "ninetales",
    43: "oddish", 44: "gloom", 45: "vileplume", 128: "tauros", 745: "lycanroc-midday",
}
FIRE_MEMBERS = [4, 5, 6, 37, 38, 58, 59, 77, 78, 126, 136, 146]


def name_of(pid: int) -> str:
    return NAMES.get(pid, f"mon-{pid}")


def ref(pid: int) -> dict:
    return {"name": name_of(pid), "url": f"{BASE}/pokemon/{pid}/"}


def species_ref(name: str, pid: int) -> dict:
    return {"name": name, "url": f"{BASE}/pokemon-species/{pid}/"}


def chain_node(name: str, pid: int, children: Optional[List[dict]] = None) -> dict:
    return {"species": species_ref(name, pid), "evolves_to": children or [], "evolution_details": []}


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, content: bytes = b"", text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        self._text = text

    def json(self):
        if self._text is not None:
            return json.loads(self._text)
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Serves canned PokeAPI responses; unknown urls answer 404."""

    def __init__(self):
        self.routes: Dict[str, FakeResponse] = {}
        self.calls: List[str] = []
        self.failing: set = set()
        self.total = TOTAL_POKEMON

    def add(self, url: str, payload=None, status_code: int = 200, **kw) -> None:
        self.routes[url] = FakeResponse(status_code, payload, **kw)

    def get(self, url, params=None, timeout=None):
        self.calls.append(url)
        if url in self.failing:
            raise requests.ConnectionError(f"connection refused: {url}")
        if url == f"{BASE}/pokemon" and params is not None:
            offset = int(params["offset"])
            limit = int(params["limit"])
            ids = range(offset + 1, min(offset + limit, self.total) + 1)
            return FakeResponse(200, {"count": self.total, "results": [ref(i) for i in ids]})
        if url in self.routes:
            return self.routes[url]
        return FakeResponse(404, {"detail": "Not found."})


def pokemon_payload(pid: int, types=("normal",), height: int = 7, weight: int = 69, name: Optional[str] = None, species: Optional[str] = None) -> dict:
    # slots listed out of order on purpose
    rows = [{"slot": i + 1, "type": {"name": t, "url": f"{BASE}/type/{t}/"}} for i, t in enumerate(types)]
    name = name or name_of(pid)
    return {
        "id": pid,
        "name": name,
        "height": height,
        "weight": weight,
        "types": list(reversed(rows)),
        "species": species_ref(species or name, pid),
    }


def add_line(s: "FakeSession", species_id: int, species_name: str, chain_id: int, chain: dict) -> None:
    s.add(f"{BASE}/pokemon-species/{species_id}/", {
        "name": species_name,
        "evolution_chain": {"url": f"{BASE}/evolution-chain/{chain_id}/"},
    })
    s.add(f"{BASE}/evolution-chain/{chain_id}/", {"id": chain_id, "chain": chain})


@pytest.fixture
def session() -> FakeSession:
    s = FakeSession()
    s.add(f"{BASE}/type/fire", {"name": "fire", "pokemon": [{"slot": 1, "pokemon": ref(i)} for i in FIRE_MEMBERS]})
    for pid in list(range(1, TOTAL_POKEMON + 1)) + [128]:
        s.add(f"{BASE}/pokemon/{pid}", pokemon_payload(pid))
    s.add(f"{BASE}/pokemon/1", pokemon_payload(1, types=("grass", "poison")))
    s.add(f"{BASE}/pokemon/25", pokemon_payload(25, types=("electric",), height=4, weight=60))
    # a form: the pokemon name is not a species name
    s.add(f"{BASE}/pokemon/745", pokemon_payload(745, types=("rock",), species="lycanroc"))
    for pid, name in NAMES.items():
        s.routes[f"{BASE}/pokemon/{name}"] = s.routes[f"{BASE}/pokemon/{pid}"]

    # bulbasaur line: linear, three stages
    add_line(s, 1, "bulbasaur", 1, chain_node("bulbasaur", 1, [
        chain_node("ivysaur", 2, [chain_node("venusaur", 3)]),
    ]))
    # pikachu line: pichu -> pikachu -> raichu
    add_line(s, 25, "pikachu", 10, chain_node("pichu", 172, [
        chain_node("pikachu", 25, [chain_node("raichu", 26)]),
    ]))
    # oddish line: split at the last stage
    add_line(s, 43, "oddish", 18, chain_node("oddish", 43, [
        chain_node("gloom", 44, [chain_node("vileplume", 45), chain_node("bellossom", 182)]),
    ]))
    # tauros: no evolutions
    add_line(s, 128, "tauros", 53, chain_node("tauros", 128))
    # rockruff -> lycanroc, reached from the lycanroc-midday form
    add_line(s, 745, "lycanroc", 372, chain_node("rockruff", 744, [chain_node("lycanroc", 745)]))
    return s


@pytest.fixture
def client(session: FakeSession) -> PokeApiClient:
    return PokeApiClient(base_url=BASE, sprite_base=SPRITES, timeout=5, session=session)


@pytest.fixture
def store(tmp_path) -> FavoritesStore:
    return FavoritesStore(str(tmp_path / "data" / "favorites.json"))
