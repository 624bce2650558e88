import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional


APP_NAME = "PokedexViewer"
LOGGER = logging.getLogger("pokedex.settings")

POKEAPI_BASE = "https://pokeapi.co/api/v2"
SPRITE_BASE = "https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


# =========================
# Paths
# =========================
@dataclass(frozen=True)
class AppPaths:
    runtime_base: Path
    user_base: Path
    runtime_assets_dir: Path
    user_cache_dir: Path
    user_config_dir: Path
    user_data_dir: Path
    user_sprite_cache_dir: Path
    user_default_sprite: Path
    favorites_json: Path
    config_path: Path


def get_runtime_base_dir() -> Path:
    if getattr(sys, "frozen", False):
        meipass = getattr(sys, "_MEIPASS", None)
        if meipass:
            return Path(meipass).resolve()
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent


def get_user_base_dir() -> Path:
    base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
    if base:
        return Path(base) / APP_NAME
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME


def build_app_paths(user_base: Optional[Path] = None) -> AppPaths:
    runtime_base = get_runtime_base_dir()
    user_base = user_base or get_user_base_dir()
    user_cache_dir = user_base / "cache"
    user_config_dir = user_base / "config"
    user_data_dir = user_base / "data"
    return AppPaths(
        runtime_base=runtime_base,
        user_base=user_base,
        runtime_assets_dir=runtime_base / "assets",
        user_cache_dir=user_cache_dir,
        user_config_dir=user_config_dir,
        user_data_dir=user_data_dir,
        user_sprite_cache_dir=user_cache_dir / "sprites",
        user_default_sprite=user_cache_dir / "default.png",
        favorites_json=user_data_dir / "favorites.json",
        config_path=user_config_dir / "viewer.json",
    )


def ensure_user_dirs(paths: AppPaths) -> None:
    for p in (
        paths.user_base,
        paths.user_cache_dir,
        paths.user_config_dir,
        paths.user_data_dir,
        paths.user_sprite_cache_dir,
    ):
        p.mkdir(parents=True, exist_ok=True)
    LOGGER.debug("user_base=%s", paths.user_base)


# =========================
# Viewer config (viewer.json)
# =========================
@dataclass
class ViewerConfig:
    api_base: str = POKEAPI_BASE
    sprite_base: str = SPRITE_BASE
    page_size: int = 20
    request_timeout_sec: int = 15
    max_workers: int = 8
    log_level: str = "INFO"
    window_geometry: str = "980x680"
    extra: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("extra", None)
        data.update(self.extra)
        return data

    @staticmethod
    def from_dict(raw: dict) -> "ViewerConfig":
        base = ViewerConfig()
        known = set(base.to_dict().keys())
        cfg = ViewerConfig(
            api_base=str(raw.get("api_base", base.api_base) or base.api_base).rstrip("/"),
            sprite_base=str(raw.get("sprite_base", base.sprite_base) or base.sprite_base).rstrip("/"),
            page_size=max(1, min(200, int(raw.get("page_size", base.page_size)))),
            request_timeout_sec=max(3, int(raw.get("request_timeout_sec", base.request_timeout_sec))),
            max_workers=max(1, min(32, int(raw.get("max_workers", base.max_workers)))),
            log_level=str(raw.get("log_level", base.log_level) or base.log_level).upper(),
            window_geometry=str(raw.get("window_geometry", base.window_geometry) or base.window_geometry),
            extra={k: v for k, v in raw.items() if k not in known},
        )
        if cfg.log_level not in LOG_LEVELS:
            cfg.log_level = base.log_level
        return cfg


def load_viewer_config(path: Path) -> ViewerConfig:
    if not os.path.exists(path):
        return ViewerConfig()
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError("top-level value must be an object")
        return ViewerConfig.from_dict(raw)
    except Exception as exc:
        LOGGER.warning("invalid viewer config at %s, using defaults: %s", path, exc)
        return ViewerConfig()


def save_viewer_config(path: Path, cfg: ViewerConfig) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(cfg.to_dict(), f, ensure_ascii=False, indent=2)


def remember_window_geometry(path: Path, cfg: ViewerConfig, geometry: str) -> ViewerConfig:
    # a window that was never mapped reports 1x1
    if not geometry or geometry.startswith("1x1"):
        return cfg
    cfg.window_geometry = geometry
    save_viewer_config(path, cfg)
    return cfg
