import logging
import threading
import tkinter as tk
from typing import Dict, List, Optional, Set

import customtkinter as ctk

from catalog_state import CatalogController, VisibleItem
from detail_view import DetailPage, DetailView, render_lines
from favorites import FavoritesStore
from pokeapi import Category, NotFoundError, PokeApiClient, PokeApiError
from settings import (
    AppPaths,
    ViewerConfig,
    build_app_paths,
    ensure_user_dirs,
    load_viewer_config,
    remember_window_geometry,
)
from sprites import SpriteService


# =========================
# Paths / Config
# =========================
APP_TITLE = "Pokédex"
APP_VERSION = "1.0.0"
LOGGER = logging.getLogger("pokedex")

TYPE_COLORS = {
    "normal": "#A8A77A",
    "fire": "#EE8130",
    "water": "#6390F0",
    "electric": "#F7D02C",
    "grass": "#7AC74C",
    "ice": "#96D9D6",
    "fighting": "#C22E28",
    "poison": "#A33EA1",
    "ground": "#8B6B3F",
    "psychic": "#F95587",
    "rock": "#B6A136",
    "ghost": "#735797",
    "dragon": "#6F35FC",
    "dark": "#705746",
    "steel": "#B7B7CE",
    "fairy": "#D685AD",
}
STAR_ON = "★"
STAR_OFF = "☆"
THUMB_SIZE = 40


def configure_logging(level: str) -> None:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=getattr(logging, level, logging.INFO), format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _row_id(item: VisibleItem) -> Optional[int]:
    try:
        return int(item.id)
    except ValueError as exc:
        LOGGER.warning("skipping entry %s: %s", getattr(item, "name", "?"), exc)
        return None


# =========================
# Detail window
# =========================
class DetailWindow(ctk.CTkToplevel):
    def __init__(self, master: "App", pokedex_id: int):
        super().__init__(master)
        self.app = master
        self.pokedex_id = pokedex_id
        self.title(f"#{pokedex_id}")
        self.geometry("420x560")
        self._images: List[ctk.CTkImage] = []

        self.header = ctk.CTkLabel(self, text=f"#{pokedex_id}", font=("Segoe UI", 26, "bold"))
        self.header.pack(pady=(16, 6))
        self.sprite_label = ctk.CTkLabel(self, text="")
        self.sprite_label.pack()
        self.body = ctk.CTkLabel(self, text="Loading…", justify="left", anchor="w")
        self.body.pack(fill="x", padx=24, pady=10)
        ctk.CTkButton(self, text="Back to list", command=self.destroy).pack(pady=16)

        self._load_async()

    def _load_async(self):
        def task():
            self.app.detail_view.load(
                self.pokedex_id,
                on_page=self._on_page,
                on_not_found=self._show_not_found,
                on_error=self._show_error,
                dispatch=lambda fn: self.app.after(0, fn),
            )
        threading.Thread(target=task, daemon=True).start()

    def _on_page(self, page: DetailPage):
        self._populate(page)

        def fetch_sprite():
            image = self.app.sprites.load_image(page.detail.id, size=200)
            self.app.after(0, lambda: self._set_sprite(image))
        threading.Thread(target=fetch_sprite, daemon=True).start()

    def _show_not_found(self, exc: NotFoundError):
        if not self.winfo_exists():
            return
        self.header.configure(text="404")
        self.body.configure(text=f"No Pokémon with id {self.pokedex_id}.")

    def _show_error(self, exc: PokeApiError):
        if not self.winfo_exists():
            return
        self.body.configure(text=f"Could not load #{self.pokedex_id}: {exc}")

    def _populate(self, page: DetailPage):
        if not self.winfo_exists():
            return
        d = page.detail
        self.title(d.name.title())
        color = TYPE_COLORS.get(d.types[0], "#666666") if d.types else "#666666"
        self.header.configure(text=d.name.title(), text_color=color)
        self.body.configure(text="\n".join(render_lines(page)))

    def _set_sprite(self, image):
        if not self.winfo_exists():
            return
        sprite = ctk.CTkImage(light_image=image, dark_image=image, size=(200, 200))
        self._images.append(sprite)
        self.sprite_label.configure(image=sprite)


# =========================
# Main window
# =========================
class App(ctk.CTk):
    def __init__(self, paths: Optional[AppPaths] = None, config: Optional[ViewerConfig] = None):
        super().__init__()
        self.paths = paths or build_app_paths()
        ensure_user_dirs(self.paths)
        self.cfg = config or load_viewer_config(self.paths.config_path)
        configure_logging(self.cfg.log_level)

        self.title(f"{APP_TITLE} v{APP_VERSION}")
        self.geometry(self.cfg.window_geometry)
        self.wm_minsize(720, 480)

        self.client = PokeApiClient(self.cfg.api_base, self.cfg.sprite_base, timeout=self.cfg.request_timeout_sec)
        self.store = FavoritesStore(str(self.paths.favorites_json))
        self.detail_view = DetailView(self.client)
        self.sprites = SpriteService(
            str(self.paths.user_sprite_cache_dir),
            str(self.paths.user_default_sprite),
            sprite_base=self.cfg.sprite_base,
        )
        self.controller = CatalogController(
            self.client,
            self.store,
            page_size=self.cfg.page_size,
            max_workers=self.cfg.max_workers,
            dispatch=lambda fn: self.after(0, fn),
            on_change=lambda _c: self._render(),
        )

        self._category_buttons: Dict[Optional[Category], ctk.CTkButton] = {}
        self._favorites_only_var = tk.BooleanVar(value=False)
        self._status_var = tk.StringVar(value=f"v{APP_VERSION}")
        self._detail_windows: Dict[int, DetailWindow] = {}
        self._thumbs: Dict[int, ctk.CTkImage] = {}
        self._thumb_pending: Set[int] = set()
        self._thumb_labels: Dict[int, ctk.CTkLabel] = {}

        self.protocol("WM_DELETE_WINDOW", self._on_close)
        self._build_layout()
        self.controller.start()

    # ---------- Layout ----------
    def _build_layout(self):
        self.columnconfigure(0, weight=1)
        self.rowconfigure(2, weight=1)

        ctk.CTkLabel(self, text=APP_TITLE, font=("Segoe UI", 28, "bold")).grid(row=0, column=0, pady=(12, 4))

        filters = ctk.CTkFrame(self, fg_color="transparent")
        filters.grid(row=1, column=0, sticky="ew", padx=12)
        per_row = 9
        entries: List[Optional[Category]] = [None] + list(Category)
        for i, cat in enumerate(entries):
            label = "ALL" if cat is None else cat.value.upper()
            btn = ctk.CTkButton(
                filters,
                text=label,
                width=76,
                command=lambda c=cat: self._on_category(c),
            )
            btn.grid(row=i // per_row, column=i % per_row, padx=3, pady=3)
            self._category_buttons[cat] = btn
        ctk.CTkSwitch(
            filters,
            text="Favorites only",
            variable=self._favorites_only_var,
            command=self.controller.toggle_favorites_only,
        ).grid(row=len(entries) // per_row + 1, column=0, columnspan=3, sticky="w", padx=3, pady=(6, 3))

        self.list_frame = ctk.CTkScrollableFrame(self)
        self.list_frame.grid(row=2, column=0, sticky="nsew", padx=12, pady=8)
        self.list_frame.columnconfigure(2, weight=1)

        bottom = ctk.CTkFrame(self, fg_color="transparent")
        bottom.grid(row=3, column=0, sticky="ew", padx=12, pady=(0, 10))
        bottom.columnconfigure(0, weight=1)
        ctk.CTkLabel(bottom, textvariable=self._status_var, anchor="w").grid(row=0, column=0, sticky="w")
        self.load_more_btn = ctk.CTkButton(bottom, text="Load more", command=self.controller.load_more)
        self.load_more_btn.grid(row=0, column=1, sticky="e")

    # ---------- Events ----------
    def _on_category(self, category: Optional[Category]):
        if category is None:
            self.controller.clear_category()
        else:
            self.controller.select_category(category)

    def _on_star(self, pokedex_id: int):
        try:
            self.controller.toggle_favorite(pokedex_id)
        except OSError as exc:
            LOGGER.error("cannot save favorites: %s", exc)
            self._status_var.set(f"Could not save favorites: {exc}")

    def _on_close(self):
        try:
            remember_window_geometry(self.paths.config_path, self.cfg, self.geometry())
        except OSError as exc:
            LOGGER.warning("cannot save viewer config: %s", exc)
        self.destroy()

    def _open_detail(self, pokedex_id: int):
        win = self._detail_windows.get(pokedex_id)
        if win is not None and win.winfo_exists():
            win.focus()
            return
        self._detail_windows[pokedex_id] = DetailWindow(self, pokedex_id)

    # ---------- Thumbnails ----------
    def _request_thumb(self, pokedex_id: int):
        if pokedex_id in self._thumb_pending:
            return
        self._thumb_pending.add(pokedex_id)

        def task():
            image = self.sprites.load_image(pokedex_id, size=THUMB_SIZE)
            self.after(0, lambda: self._set_thumb(pokedex_id, image))
        threading.Thread(target=task, daemon=True).start()

    def _set_thumb(self, pokedex_id: int, image):
        self._thumb_pending.discard(pokedex_id)
        thumb = ctk.CTkImage(light_image=image, dark_image=image, size=(THUMB_SIZE, THUMB_SIZE))
        self._thumbs[pokedex_id] = thumb
        label = self._thumb_labels.get(pokedex_id)
        if label is not None and label.winfo_exists():
            label.configure(image=thumb)

    # ---------- Rendering ----------
    def _render(self):
        ctl = self.controller
        state = ctl.state
        for cat, btn in self._category_buttons.items():
            active = cat == state.active_category
            btn.configure(fg_color="#cc0000" if active else ("#3B8ED0", "#1F6AA5"))

        for child in self.list_frame.winfo_children():
            child.destroy()
        self._thumb_labels = {}
        for row, item in enumerate(ctl.visible):
            pid = _row_id(item)
            if pid is None:
                continue
            thumb = ctk.CTkLabel(self.list_frame, text="", width=THUMB_SIZE, height=THUMB_SIZE)
            if pid in self._thumbs:
                thumb.configure(image=self._thumbs[pid])
            else:
                self._request_thumb(pid)
            thumb.grid(row=row, column=0, padx=(0, 6), pady=2)
            self._thumb_labels[pid] = thumb
            star = STAR_ON if ctl.is_favorite(pid) else STAR_OFF
            ctk.CTkButton(
                self.list_frame, text=star, width=32, fg_color="transparent",
                command=lambda p=pid: self._on_star(p),
            ).grid(row=row, column=1, padx=(0, 6), pady=2)
            ctk.CTkLabel(self.list_frame, text=f"#{pid}  {item.name.title()}", anchor="w").grid(row=row, column=2, sticky="w")
            ctk.CTkButton(
                self.list_frame, text="Details", width=80,
                command=lambda p=pid: self._open_detail(p),
            ).grid(row=row, column=3, pady=2)

        self.load_more_btn.configure(state="normal" if state.can_load_more() else "disabled")
        if state.loading or ctl.projecting:
            self._status_var.set("Loading…")
        elif state.last_error is not None:
            self._status_var.set(f"Fetch failed: {state.last_error}")
        else:
            scope = state.active_category.value if state.active_category else "all"
            mode = "favorites" if state.favorites_only else scope
            self._status_var.set(f"{len(ctl.visible)} shown ({mode}) · {len(ctl.favorites)} favorites")


def main() -> None:
    from launcher import run_app

    paths = build_app_paths()
    ensure_user_dirs(paths)
    cfg = load_viewer_config(paths.config_path)
    configure_logging(cfg.log_level)
    sprites = SpriteService(str(paths.user_sprite_cache_dir), str(paths.user_default_sprite), sprite_base=cfg.sprite_base)

    run_app(
        app_factory=lambda: App(paths, cfg),
        ensure_assets=sprites.ensure_default_sprite,
        splash_duration_ms=900,
        runtime_assets_dir=str(paths.runtime_assets_dir),
    )


if __name__ == "__main__":
    main()
