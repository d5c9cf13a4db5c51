"""
Deterministic performance scoring.

Three component ratios (CPU, GPU, RAM) are each clamped, weighted by the usage
profile and scaled to a 0-100 score:
1. CPU: cores * MHz / 40000
2. GPU: primary GPU memory / 8 GiB (0 without a GPU)
3. RAM: total memory / 16 GiB
"""

import math
from dataclasses import dataclass
from typing import Dict

from pcanalys.config.constants import (
    CPU_SCORE_DIVISOR,
    GPU_REFERENCE_BYTES,
    RAM_REFERENCE_BYTES,
    SCORE_CEILING,
)
from pcanalys.schemas.analysis import UsageProfile
from pcanalys.schemas.hardware import HardwareProfile


@dataclass(frozen=True)
class ScoreWeights:
    cpu: float
    gpu: float
    ram: float


# Each row sums to 1.0
USAGE_WEIGHTS: Dict[UsageProfile, ScoreWeights] = {
    UsageProfile.GAMING: ScoreWeights(cpu=0.4, gpu=0.5, ram=0.1),
    UsageProfile.WORK: ScoreWeights(cpu=0.6, gpu=0.2, ram=0.2),
    UsageProfile.CONTENT_CREATION: ScoreWeights(cpu=0.5, gpu=0.3, ram=0.2),
    UsageProfile.GENERAL: ScoreWeights(cpu=0.5, gpu=0.3, ram=0.2),
}


@dataclass(frozen=True)
class ComponentScores:
    cpu: float
    gpu: float
    ram: float


def component_scores(profile: HardwareProfile) -> ComponentScores:
    """
    Per-component ratios, each clamped to [0, SCORE_CEILING].
    """
    cpu = profile.cpu.cores * profile.cpu.frequency_mhz / CPU_SCORE_DIVISOR
    gpu = profile.primary_gpu_memory_bytes / GPU_REFERENCE_BYTES
    ram = profile.memory.total_bytes / RAM_REFERENCE_BYTES
    return ComponentScores(
        cpu=_clamp(cpu),
        gpu=_clamp(gpu),
        ram=_clamp(ram),
    )


def score(profile: HardwareProfile, usage: UsageProfile) -> int:
    """
    Weighted performance score in [0, 100].

    The weighted sum of the ratios is expressed as a percentage, clamped and
    rounded half-up. An unknown usage profile raises KeyError.
    """
    weights = USAGE_WEIGHTS[usage]
    parts = component_scores(profile)
    weighted = parts.cpu * weights.cpu + parts.gpu * weights.gpu + parts.ram * weights.ram
    return int(math.floor(_clamp(weighted * 100) + 0.5))


def _clamp(value: float) -> float:
    return max(0.0, min(float(SCORE_CEILING), value))
