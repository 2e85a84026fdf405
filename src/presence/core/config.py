from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from ..utils.geo import Coordinate
from .geofence import GeofenceConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/config.json")

# Kantor (ofis) noktası; config dosyası yoksa bunlar kullanılır
DEFAULT_LAT0 = -6.562300216281189
DEFAULT_LON0 = 107.78160173799691
DEFAULT_RADIUS_M = 100.0


class Config:
    def __init__(self, d: dict[str, Any]):
        self.raw = d
        self.api_verbose = bool(d.get("api", {}).get("verbose", False))
        g = d.get("geofence", {})
        self.gf_name = g.get("name")
        self.gf_address = g.get("address")
        self.gf_lat0 = float(g.get("lat0", DEFAULT_LAT0))
        self.gf_lon0 = float(g.get("lon0", DEFAULT_LON0))
        self.gf_radius_m = float(g.get("radius_m", DEFAULT_RADIUS_M))
        self.gf_debounce_sec = int(g.get("debounce_sec", 0))
        self.gf_poll_interval_sec = float(g.get("poll_interval_sec", 5.0))

    def geofence(self) -> GeofenceConfig:
        return GeofenceConfig(
            reference_point=Coordinate(self.gf_lat0, self.gf_lon0),
            radius_m=self.gf_radius_m,
            debounce_sec=self.gf_debounce_sec,
            poll_interval_sec=self.gf_poll_interval_sec,
            name=self.gf_name,
            address=self.gf_address,
        )


def _apply_env(d: dict[str, Any]) -> dict[str, Any]:
    g = dict(d.get("geofence", {}))
    for env, key in (
        ("GEOFENCE_CENTER_LAT", "lat0"),
        ("GEOFENCE_CENTER_LON", "lon0"),
        ("GEOFENCE_RADIUS_M", "radius_m"),
    ):
        val = os.getenv(env, "").strip()
        if val:
            g[key] = float(val)
    out = {**d, "geofence": g}

    # API_MODE = "minimal" | "verbose" (öncelik env'de)
    api_mode = os.getenv("API_MODE", "").strip().lower()
    if api_mode in {"minimal", "verbose"}:
        out["api"] = {**d.get("api", {}), "verbose": api_mode == "verbose"}
    return out


def load_config(path: str | Path | None = None) -> Config:
    p = Path(path or os.getenv("PRESENCE_CONFIG") or DEFAULT_CONFIG_PATH)
    if p.exists():
        with p.open("r", encoding="utf-8") as f:
            d = json.load(f)
    else:
        logger.warning("config %s not found, using defaults", p)
        d = {}
    return Config(_apply_env(d))
