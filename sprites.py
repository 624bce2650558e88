import logging
import os
from typing import Optional

import requests
from PIL import Image

from pokeapi import sprite_url
from settings import SPRITE_BASE


LOGGER = logging.getLogger("pokedex.sprites")


# =========================
# Sprite service (raw by ID + cache)
# =========================
class SpriteService:
    def __init__(
        self,
        cache_dir: str,
        default_path: str,
        sprite_base: str = SPRITE_BASE,
        timeout: int = 20,
        session: Optional[requests.Session] = None,
    ):
        self.cache_dir = cache_dir
        self.default_path = default_path
        self.sprite_base = sprite_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def sprite_url(self, pokedex_id: int) -> str:
        return sprite_url(pokedex_id, self.sprite_base)

    def ensure_default_sprite(self) -> str:
        if os.path.exists(self.default_path):
            return self.default_path
        os.makedirs(os.path.dirname(self.default_path), exist_ok=True)
        img = Image.new("RGBA", (96, 96), (25, 25, 30, 255))
        img.save(self.default_path)
        return self.default_path

    def get_sprite_path(self, pokedex_id: int) -> str:
        cached = os.path.join(self.cache_dir, f"{pokedex_id}.png")
        if os.path.exists(cached):
            return cached

        url = self.sprite_url(pokedex_id)
        try:
            r = self.session.get(url, timeout=self.timeout)
            r.raise_for_status()
            os.makedirs(self.cache_dir, exist_ok=True)
            with open(cached, "wb") as f:
                f.write(r.content)
            return cached
        except (requests.RequestException, OSError) as exc:
            # a missing sprite is a broken image, not an error
            LOGGER.info("sprite %d unavailable from %s: %s", pokedex_id, url, exc)
            return self.ensure_default_sprite()

    def load_image(self, pokedex_id: int, size: int = 96) -> Image.Image:
        path = self.get_sprite_path(pokedex_id)
        try:
            img = Image.open(path).convert("RGBA")
        except OSError as exc:
            LOGGER.info("cached sprite %s unreadable: %s", path, exc)
            img = Image.open(self.ensure_default_sprite()).convert("RGBA")
        return img.resize((size, size), Image.NEAREST)
