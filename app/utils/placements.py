import json
from typing import Iterable

from app.schemas.placement_schemas import Placement
from app.utils.rounding import round_half_up


def _round4(value) -> float:
    return round_half_up(float(value or 0) * 10000) / 10000


def build_placement_signature(placements: Iterable[Placement]) -> str:
    """Short deterministic label of which placements are active and forced to the back logo.

    e.g. "front|sleeve|__fb:default", "back|__fb:back", or "default" when
    nothing is active.
    """
    placements = [p for p in (placements or []) if p.name and p.active]
    active = sorted(p.name.strip().lower() for p in placements)
    if not active:
        return "default"
    forced_back = sorted(p.name.strip().lower() for p in placements if p.force_back is True)
    suffix = f"__fb:{','.join(forced_back)}" if forced_back else "__fb:default"
    return "|".join(active) + "|" + suffix


def normalize_placements_for_key(placements: Iterable[Placement]) -> str:
    """Stable JSON key for exact placement equality, e.g. when merging cart lines"""
    rows = [
        {
            "name": p.name,
            "active": bool(p.active),
            "b": p.force_back is True,
            "x": _round4(p.x_percent),
            "y": _round4(p.y_percent),
            "w": _round4(p.w_percent),
            "h": _round4(p.h_percent),
            # Normalized rotation, not the editor's raw "rotate" field, so keys
            # stored by older clients for rotated placements do not match
            "r": _round4(p.rotation),
        }
        for p in (placements or [])
    ]
    rows.sort(key=lambda r: (r["name"], r["x"], r["y"], r["w"], r["h"], r["r"], not r["b"], not r["active"]))
    return json.dumps(rows, separators=(",", ":"))
