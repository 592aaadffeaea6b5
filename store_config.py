# store_config.py
from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple


log = logging.getLogger(__name__)

APP_NAME = "pipewire-on-air"

DEFAULT_IGNORE_APPS: Tuple[str, ...] = ("cava", "pavucontrol")

DEFAULT_CONFIG_TEXT = """\
[Awtrix]
host =
text = ON AIR
color = #FF0000
icon = liveonair

[Monitor]
ignore_apps = cava, pavucontrol
log_ignored_apps = false
debounce_ms = 500
"""


def _linux_xdg_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


def user_config_dir(app_name: str) -> Path:
    return _linux_xdg_config_dir() / app_name


def split_list(raw: str) -> List[str]:
    out: List[str] = []
    for part in (raw or "").replace("\n", ",").split(","):
        s = part.strip()
        if s:
            out.append(s)
    return out


@dataclass(frozen=True)
class Settings:
    awtrix_host: str = ""
    awtrix_text: str = "ON AIR"
    awtrix_color: str = "#FF0000"
    awtrix_icon: str = "liveonair"
    ignore_apps: Tuple[str, ...] = DEFAULT_IGNORE_APPS
    log_ignored_apps: bool = False
    debounce_ms: int = 500


def _get_bool(cfg: configparser.ConfigParser, section: str, key: str, default: bool) -> bool:
    try:
        return cfg.getboolean(section, key, fallback=default)
    except ValueError:
        log.warning("Invalid boolean for [%s] %s, using %s", section, key, default)
        return default


def _get_int(cfg: configparser.ConfigParser, section: str, key: str, default: int) -> int:
    try:
        v = cfg.getint(section, key, fallback=default)
    except ValueError:
        log.warning("Invalid integer for [%s] %s, using %s", section, key, default)
        return default
    if v < 0:
        log.warning("Negative value for [%s] %s, using %s", section, key, default)
        return default
    return v


@dataclass(frozen=True)
class ConfigStore:
    app_name: str = APP_NAME
    filename: str = "onair.cfg"
    path_override: Optional[Path] = None

    @property
    def dir_path(self) -> Path:
        if self.path_override is not None:
            return self.path_override.parent
        return user_config_dir(self.app_name)

    @property
    def file_path(self) -> Path:
        if self.path_override is not None:
            return self.path_override
        return self.dir_path / self.filename

    def ensure_exists(self) -> None:
        self.dir_path.mkdir(parents=True, exist_ok=True)
        if not self.file_path.exists():
            self.file_path.write_text(DEFAULT_CONFIG_TEXT, encoding="utf-8")

    def load(self) -> configparser.ConfigParser:
        self.ensure_exists()
        cfg = configparser.ConfigParser()
        cfg.read(self.file_path, encoding="utf-8")

        for section in ("Awtrix", "Monitor"):
            if not cfg.has_section(section):
                cfg.add_section(section)
        return cfg

    def load_settings(self) -> Settings:
        cfg = self.load()
        d = Settings()

        if cfg.has_option("Monitor", "ignore_apps"):
            ignore = tuple(split_list(cfg.get("Monitor", "ignore_apps")))
        else:
            ignore = d.ignore_apps

        return Settings(
            awtrix_host=cfg.get("Awtrix", "host", fallback="").strip(),
            awtrix_text=cfg.get("Awtrix", "text", fallback=d.awtrix_text).strip() or d.awtrix_text,
            awtrix_color=cfg.get("Awtrix", "color", fallback=d.awtrix_color).strip() or d.awtrix_color,
            awtrix_icon=cfg.get("Awtrix", "icon", fallback=d.awtrix_icon).strip() or d.awtrix_icon,
            ignore_apps=ignore,
            log_ignored_apps=_get_bool(cfg, "Monitor", "log_ignored_apps", d.log_ignored_apps),
            debounce_ms=_get_int(cfg, "Monitor", "debounce_ms", d.debounce_ms),
        )
