import logging
from dataclasses import dataclass
from typing import List, Tuple

from pokeapi import FetchError, PokeApiClient, extract_id_from_url, sprite_url


LOGGER = logging.getLogger("pokedex.evolution")


@dataclass(frozen=True)
class RelationshipNode:
    species_name: str
    image_url: str


RelationshipLevel = List[RelationshipNode]


class RelationshipTreeBuilder:
    """
    Evolution chain as levels: level d holds every species at depth d of the
    chain, across all branches, in pre-order. Lookup failures give [].
    """

    def __init__(self, client: PokeApiClient):
        self.client = client

    def build_tree(self, entity_name: str, species_url: str = "") -> List[RelationshipLevel]:
        try:
            if not species_url:
                species_url = self.client.get_species_url(entity_name)
            species = self.client.get_json(species_url)
            chain_ref = species.get("evolution_chain")
            chain_url = chain_ref.get("url", "") if isinstance(chain_ref, dict) else ""
            if not chain_url:
                LOGGER.info("no evolution chain url for %s", entity_name)
                return []
            chain_payload = self.client.get_json(str(chain_url))
        except FetchError as exc:
            LOGGER.info("relationship data unavailable for %s: %s", entity_name, exc)
            return []
        root = chain_payload.get("chain")
        if not isinstance(root, dict) or not root:
            return []
        try:
            return self.flatten(root)
        except (AttributeError, TypeError) as exc:
            LOGGER.info("malformed evolution chain for %s: %s", entity_name, exc)
            return []

    def flatten(self, root: dict) -> List[RelationshipLevel]:
        levels: List[RelationshipLevel] = []
        stack: List[Tuple[dict, int]] = [(root, 0)]
        while stack:
            node, depth = stack.pop()
            if depth == len(levels):
                levels.append([])
            levels[depth].append(self._node(node))
            children = node.get("evolves_to", []) or []
            # reversed so the first child is popped first
            for child in reversed(children):
                stack.append((child, depth + 1))
        return levels

    def _node(self, node: dict) -> RelationshipNode:
        species_obj = node.get("species", {}) or {}
        name = str(species_obj.get("name", ""))
        try:
            image = sprite_url(extract_id_from_url(species_obj.get("url", "")), self.client.sprite_base)
        except ValueError:
            image = ""
        return RelationshipNode(species_name=name, image_url=image)
