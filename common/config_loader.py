from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List
import yaml

from portfolio.holding import Holding

def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

@dataclass(frozen=True)
class EngineSettings:
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def validation_tolerance(self) -> float:
        return float((self.raw.get("validation") or {}).get("tolerance", 0.5))

    @property
    def tolerance_percent(self) -> float:
        return float((self.raw.get("forecast") or {}).get("tolerance_percent", 1.0))

    @property
    def max_months(self) -> int:
        return int((self.raw.get("forecast") or {}).get("max_months", 600))

    @property
    def log_level(self) -> str:
        return str((self.raw.get("logging") or {}).get("level", "WARNING"))

    @property
    def log_json(self) -> bool:
        return bool((self.raw.get("logging") or {}).get("json", False))

def build_holdings(raw: Dict[str, Any]) -> List[Holding]:
    holdings = []
    for i, h in enumerate(raw.get("holdings") or []):
        if not isinstance(h, dict) or "id" not in h:
            raise ValueError(f"holdings entry {i} has no id")
        holdings.append(
            Holding(
                id=str(h["id"]),
                current_value=h.get("current_value", 0),
                target_allocation=h.get("target_allocation", 0),
                name=h.get("name"),
            )
        )
    return holdings

@dataclass(frozen=True)
class LoadedConfig:
    settings: EngineSettings
    holdings: List[Holding]

def load_all(
    config_path: str = "config/engine.yaml",
    holdings_path: str = "config/holdings.yaml",
) -> LoadedConfig:
    try:
        raw_settings = load_yaml(config_path)
    except FileNotFoundError:
        raw_settings = {}
    return LoadedConfig(
        settings=EngineSettings(raw_settings),
        holdings=build_holdings(load_yaml(holdings_path)),
    )
