"""
Report view of an analysis record: the stored record plus the display figures
the report page renders (sizes in GB, per-component bars, sub-scores).
"""

from typing import Any, Dict

from pcanalys.config.constants import BYTES_PER_MB, GIB
from pcanalys.schemas.analysis import AnalysisRecord
from pcanalys.schemas.hardware import HardwareProfile, StorageKind
from pcanalys.services.scoring_service import component_scores

FAST_STORAGE = (StorageKind.SSD, StorageKind.NVME)


def _gb(value: int) -> float:
    return round(value / GIB, 1)


def component_bars(profile: HardwareProfile) -> Dict[str, int]:
    """
    0-100 bars per component. Rough visual indicators, independent of the
    performance score and of the usage profile.
    """
    cpu = min(100, round(profile.cpu.frequency_mhz * max(profile.cpu.cores, 1) / 50))
    gpu = min(100, round(profile.primary_gpu_memory_bytes / BYTES_PER_MB / 120))
    ram = min(100, round(profile.memory.total_bytes / BYTES_PER_MB / 320))
    if profile.storage and profile.storage[0].kind in FAST_STORAGE:
        storage = 90
    else:
        storage = 60
    return {"cpu": cpu, "gpu": gpu, "ram": ram, "storage": storage}


def summarize(profile: HardwareProfile) -> Dict[str, Any]:
    memory = profile.memory
    primary_gpu = profile.gpu[0] if profile.gpu else None
    sub_scores = component_scores(profile)
    return {
        "cpu": f"{profile.cpu.name} ({profile.cpu.cores} cores @ {profile.cpu.frequency_mhz / 1000:.1f} GHz)",
        "gpu": primary_gpu.name if primary_gpu else None,
        "gpuMemoryGB": _gb(profile.primary_gpu_memory_bytes),
        "memoryTotalGB": _gb(memory.total_bytes),
        "memoryUsedGB": _gb(memory.used_bytes),
        "memoryUsagePercent": round(memory.used_bytes / memory.total_bytes * 100) if memory.total_bytes else 0,
        "storageTotalGB": _gb(sum(s.total_bytes for s in profile.storage)),
        "storageFreeGB": _gb(sum(s.available_bytes for s in profile.storage)),
        "os": " ".join(part for part in (profile.os.name, profile.os.version) if part),
        "bars": component_bars(profile),
        "componentRatios": {
            "cpu": round(sub_scores.cpu, 3),
            "gpu": round(sub_scores.gpu, 3),
            "ram": round(sub_scores.ram, 3),
        },
    }


def build_report(record: AnalysisRecord) -> Dict[str, Any]:
    """Report payload for GET /api/report/{id}."""
    report = record.to_dict(include_raw=True)
    report["summary"] = summarize(record.hardware_profile)
    return report
