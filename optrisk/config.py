from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel


class AppConfig(BaseModel):
    """Typed configuration loaded from YAML or environment."""

    LOG_LEVEL: str = "INFO"

    # Pricing inputs -------------------------------------------------
    INTEREST_RATE: float = 0.0
    DIVIDEND_YIELD: float = 0.0
    DEFAULT_IV: float = 0.20
    # IV values above this are read as percentages (15.3 -> 0.153)
    IV_PERCENT_THRESHOLD: float = 3.0
    EXPIRY_CUTOFF: str = "15:30"

    # Contract multipliers -------------------------------------------
    DEFAULT_LOT_SIZE: int = 1
    LOT_SIZES: Dict[str, int] = {
        "NIFTY": 75,
        "BANKNIFTY": 35,
        "FINNIFTY": 65,
        "MIDCPNIFTY": 140,
        "SENSEX": 20,
    }

    # Stress test grid -----------------------------------------------
    SPOT_MOVES: List[float] = [-0.3, -0.2, -0.1, -0.05, 0.0, 0.05, 0.1, 0.2, 0.3]
    VOL_SHIFTS: List[float] = [-0.2, 0.0, 0.2]
    EXPOSURE_PERCENT: float = 0.03

    # Payoff sweep ---------------------------------------------------
    PAYOFF_RANGE_PCT: float = 0.15
    PAYOFF_POINTS: int = 101


_BASE_DIR = Path(__file__).resolve().parent.parent


def _load_env(path: Path) -> Dict[str, Any]:
    """Parse simple KEY=VALUE lines from an .env file."""
    data: Dict[str, Any] = {}
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" in line:
            key, val = line.split("=", 1)
            data[key.strip()] = val.strip()
    return data


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load configuration from a YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        content = yaml.safe_load(f)
    return content or {}


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def load_config() -> AppConfig:
    """Load configuration from .env or YAML file."""
    config_path = os.environ.get("OPTRISK_CONFIG")
    if config_path:
        path = Path(config_path)
    else:
        candidates = [
            _BASE_DIR / "config.yaml",
            _BASE_DIR / "config.yml",
            _BASE_DIR / ".env",
        ]
        path = next((p for p in candidates if p.exists()), None)

    data: Dict[str, Any] = {}
    if path and path.exists():
        if path.suffix in {".yaml", ".yml"}:
            data = _load_yaml(path)
        else:
            data = _load_env(path)

    cfg = {**AppConfig().model_dump(), **data}
    for key in ("SPOT_MOVES", "VOL_SHIFTS"):
        if isinstance(cfg.get(key), str):
            cfg[key] = [float(v) for v in _split_csv(cfg[key])]
    if isinstance(cfg.get("LOT_SIZES"), str):
        # NIFTY:75,BANKNIFTY:35
        pairs = (item.split(":", 1) for item in _split_csv(cfg["LOT_SIZES"]))
        cfg["LOT_SIZES"] = {k.strip().upper(): int(v) for k, v in pairs}
    return AppConfig(**cfg)


def save_config(config: AppConfig, path: Path | None = None) -> None:
    """Persist configuration to a YAML file."""
    if path is None:
        env_path = os.environ.get("OPTRISK_CONFIG")
        path = Path(env_path) if env_path else _BASE_DIR / "config.yaml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.model_dump(), f)


CONFIG = load_config()
LOCK = threading.Lock()


def get(name: str, default: Any | None = None) -> Any:
    """Return configuration value for name with optional fallback.

    Both reads and writes are synchronized using ``LOCK`` so concurrent
    access from multiple threads is safe.
    """
    with LOCK:
        return getattr(CONFIG, name, default)


def reload() -> None:
    """Reload configuration from disk into the global CONFIG object."""
    global CONFIG
    with LOCK:
        CONFIG = load_config()


def update(values: Dict[str, Any], *, persist: bool = True) -> None:
    """Update global configuration with provided key/value pairs."""
    with LOCK:
        for key, val in values.items():
            if hasattr(CONFIG, key):
                setattr(CONFIG, key, val)
        if persist:
            save_config(CONFIG)


def lot_size_for(underlying: str | None) -> int:
    """Return the contract multiplier configured for ``underlying``."""
    sizes = get("LOT_SIZES", {}) or {}
    if underlying:
        size = sizes.get(underlying.strip().upper())
        if size:
            return int(size)
    return int(get("DEFAULT_LOT_SIZE", 1) or 1)
