"""Vapor-pressure deficit helpers.

The controller reports its own VPD reading together with the optimal band for
the current stage. These helpers classify a reading against a band and mirror
the controller's calculation so values can be checked or previewed locally.
"""

from __future__ import annotations

import math
from typing import Literal, NamedTuple

GrowStage = Literal["veg", "flower"]
VpdStatus = Literal["too_low", "optimal", "too_high"]

GROW_STAGES: tuple[GrowStage, ...] = ("veg", "flower")

# Flower ages count from germination; flower is assumed to start after ~30 days.
FLOWER_START_DAY = 30


class VpdBand(NamedTuple):
    min_kpa: float
    max_kpa: float


STAGE_BANDS: dict[GrowStage, VpdBand] = {
    "veg": VpdBand(0.8, 1.2),
    "flower": VpdBand(1.2, 1.6),
}


def classify_vpd(vpd_kpa: float, vpd_min: float, vpd_max: float) -> VpdStatus:
    """Classify a reading against an inclusive ``[vpd_min, vpd_max]`` band."""
    if vpd_kpa < vpd_min:
        return "too_low"
    if vpd_kpa > vpd_max:
        return "too_high"
    return "optimal"


def saturation_vapor_pressure(temp_c: float) -> float:
    """Magnus-Tetens saturation vapor pressure in kPa."""
    return 0.6108 * math.exp((17.27 * temp_c) / (temp_c + 237.3))


def compute_vpd(temp_c: float, humidity_percent: float) -> float:
    es = saturation_vapor_pressure(temp_c)
    ea = es * humidity_percent / 100.0
    return es - ea


def band_for_stage(stage: GrowStage, plant_age_days: float | None = None) -> VpdBand:
    """Return the optimal band for ``stage``, refined by plant age when known."""
    if plant_age_days is None or plant_age_days < 0:
        return STAGE_BANDS[stage]

    if stage == "veg":
        if plant_age_days <= 14:
            return VpdBand(0.4, 0.8)
        if plant_age_days <= 28:
            return VpdBand(0.8, 1.0)
        return VpdBand(1.0, 1.2)

    flower_days = plant_age_days - FLOWER_START_DAY
    if flower_days <= 21:
        return VpdBand(1.0, 1.3)
    if flower_days <= 49:
        return VpdBand(1.2, 1.5)
    return VpdBand(1.3, 1.6)
