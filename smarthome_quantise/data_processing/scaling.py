from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, Mapping, Optional

from smarthome_quantise.data_processing.schemas import SensorCategory

log = logging.getLogger(__name__)

Scaler = Callable[[float], float]


def scale_temperature(value: float, min_range: float, max_range: float) -> float:
    """
    Min-max scaling into [0, 1]:
      [-50, -30] -> shift by 50 -> [0, 20] -> divide by 20 -> [0, 1]
    """
    if min_range > max_range:
        log.error("Min range %s is greater than max range %s; returning value unscaled", min_range, max_range)
        return value
    span = max_range - min_range
    if span == 0:
        return 0.0
    return (value - min_range) / span


def scale_light(intensity: float) -> float:
    """Squash [0, inf) into [0, 1) with 2*sigmoid(x) - 1."""
    squashed = 1.0 / (1.0 + math.exp(-intensity))
    return squashed * 2.0 - 1.0


def build_scalers(cfg: Optional[Mapping[str, Any]]) -> Dict[SensorCategory, Scaler]:
    """
    Expected config layout (all keys optional):
      scaling:
        temperature: {min: -10, max: 40}
        light: sigmoid
    """
    cfg = cfg or {}
    scalers: Dict[SensorCategory, Scaler] = {}

    temp = cfg.get("temperature")
    if temp:
        lo, hi = float(temp["min"]), float(temp["max"])
        scalers[SensorCategory.TEMPERATURE] = lambda v: scale_temperature(v, lo, hi)

    light = cfg.get("light")
    if light:
        if str(light).lower() != "sigmoid":
            raise ValueError(f"Unsupported light scaling: {light!r} (only 'sigmoid')")
        scalers[SensorCategory.LIGHT] = scale_light

    unknown = set(cfg) - {"temperature", "light"}
    if unknown:
        log.warning("Ignoring scaling options for: %s", ", ".join(sorted(unknown)))
    return scalers
