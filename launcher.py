import logging
import os
import sys
import tkinter as tk
from pathlib import Path
from typing import Callable, Optional

from PIL import Image, ImageTk


LOGGER = logging.getLogger("pokedex.launcher")
SPLASH_BG = "#CC0000"


def resource_path(rel: str) -> str:
    if hasattr(sys, "_MEIPASS"):
        return os.path.join(sys._MEIPASS, rel)
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), rel)


def _first_existing(*paths: str) -> str:
    for p in paths:
        if p and os.path.exists(p):
            return p
    return ""


class Splash(tk.Toplevel):
    def __init__(self, master: tk.Tk, image_path: str = "", ms: int = 900):
        super().__init__(master)
        self.overrideredirect(True)
        self.configure(bg=SPLASH_BG)
        self._tkimg = None

        rendered_image = False
        if image_path:
            try:
                img = Image.open(image_path).convert("RGBA")
                img = img.resize((360, 200), Image.LANCZOS)
                self._tkimg = ImageTk.PhotoImage(img)
                tk.Label(self, image=self._tkimg, bg=SPLASH_BG, bd=0, highlightthickness=0).pack()
                rendered_image = True
            except OSError as exc:
                LOGGER.info("splash image %s unusable: %s", image_path, exc)
        if not rendered_image:
            body = tk.Frame(self, bg=SPLASH_BG, width=360, height=200)
            body.pack(fill="both", expand=True)
            body.pack_propagate(False)
            tk.Label(body, text="Pokédex", bg=SPLASH_BG, fg="#FFFFFF", font=("Segoe UI", 24, "bold")).pack(expand=True)

        self.update_idletasks()
        w = self.winfo_width()
        h = self.winfo_height()
        x = (self.winfo_screenwidth() - w) // 2
        y = (self.winfo_screenheight() - h) // 2
        self.geometry(f"{w}x{h}+{x}+{y}")
        self.after(ms, self.destroy)


def run_app(
    app_factory: Callable[[], tk.Tk],
    ensure_assets: Optional[Callable[[], object]] = None,
    splash_duration_ms: int = 900,
    runtime_assets_dir: str = "",
    show_splash: bool = True,
) -> None:
    if ensure_assets:
        ensure_assets()

    if show_splash and splash_duration_ms > 0:
        runtime_splash = str(Path(runtime_assets_dir) / "splash.png") if runtime_assets_dir else ""
        bundled_splash = resource_path(os.path.join("assets", "splash.png"))
        splash_path = _first_existing(runtime_splash, bundled_splash)

        boot_root = tk.Tk()
        boot_root.withdraw()
        Splash(boot_root, splash_path, ms=splash_duration_ms)
        boot_root.after(splash_duration_ms + 60, boot_root.quit)
        boot_root.mainloop()
        if boot_root.winfo_exists():
            boot_root.destroy()

    app = app_factory()
    app.mainloop()
