"""
Hardware payload normalizer.

Agents in the field send one of several payload generations. This module is the
only place that knows about them: a pure detector picks the generation from an
ordered list of key probes, a per-generation extractor pulls out the raw
sections, and shared mappers turn those sections into the canonical
HardwareProfile. Units are reconciled here once and never again downstream.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pcanalys.config.constants import BYTES_PER_MB, BYTES_THRESHOLD, GHZ_FREQUENCY_CEILING
from pcanalys.schemas.analysis import parse_isoformat
from pcanalys.schemas.hardware import (
    CPUProfile,
    GPUDevice,
    HardwareProfile,
    MemoryProfile,
    OSProfile,
    StorageDevice,
    StorageKind,
)
from pcanalys.services.errors import MalformedInput
from pcanalys.utils.logger import get_logger

log = get_logger(__name__)


class PayloadVariant(Enum):
    CURRENT = "current"                 # {hardware: {...}, software: {os}}
    AGENT_ENVELOPE = "agent_envelope"   # {hardwareData: SystemInfo}
    AGENT = "agent"                     # bare SystemInfo {os, cpu, memory, storage, gpu}
    LEGACY = "legacy"                   # {cpu, gpu: {}, ram: {totalMemory}, system: {os}}


# Newest generation first. The first probe whose key path resolves to an object wins.
VARIANT_PROBES: List[Tuple[PayloadVariant, Tuple[str, ...]]] = [
    (PayloadVariant.CURRENT, ("hardware", "memory")),
    (PayloadVariant.AGENT_ENVELOPE, ("hardwareData",)),
    (PayloadVariant.AGENT, ("memory",)),
    (PayloadVariant.LEGACY, ("ram",)),
]


@dataclass
class RawSections:
    """The un-normalized pieces of one payload, plus where they were found."""
    cpu: Any
    memory: Any
    storage: Any
    gpu: Any
    os: Any
    cpu_path: str
    os_path: str


# --- Unit rules ---

def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str):
        try:
            n = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def to_bytes(value: Any) -> int:
    """
    Byte-unit reconciliation rule, applied to every capacity field.

    A value strictly greater than BYTES_THRESHOLD is taken as bytes. A positive
    value at or below it is taken as megabytes. Missing, negative or
    non-numeric values become 0. A payload meaning literally 1 MiB of bytes is
    indistinguishable from 1 TiB expressed in MB; the MB reading is chosen.
    """
    n = _number(value)
    if n is None or n <= 0:
        return 0
    if n > BYTES_THRESHOLD:
        return int(round(n))
    return int(round(n * BYTES_PER_MB))


def to_optional_bytes(value: Any) -> Optional[int]:
    if _number(value) is None:
        return None
    return to_bytes(value)


def to_megahertz(value: Any) -> int:
    """Legacy agents report GHz; anything below GHZ_FREQUENCY_CEILING is GHz."""
    n = _number(value)
    if n is None or n <= 0:
        return 0
    if n < GHZ_FREQUENCY_CEILING:
        return int(round(n * 1000))
    return int(round(n))


def _count(value: Any) -> int:
    n = _number(value)
    if n is None or n <= 0:
        return 0
    return int(n)


def _optional_count(value: Any) -> Optional[int]:
    n = _number(value)
    if n is None or n <= 0:
        return None
    return int(n)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _first(data: Any, *keys: str) -> Any:
    """First non-None value among the given spellings of a field."""
    if not isinstance(data, dict):
        return None
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _resolve(data: Any, path: Tuple[str, ...]) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


# --- Variant detection ---

def detect_variant(raw: Any) -> PayloadVariant:
    """Pick the payload generation from VARIANT_PROBES, newest first."""
    if not isinstance(raw, dict):
        raise MalformedInput("Hardware payload must be a JSON object", paths=["root"])

    for variant, path in VARIANT_PROBES:
        if isinstance(_resolve(raw, path), dict):
            return variant

    # Partial payloads: inspect whichever shape is present so required-field
    # checks still report useful paths.
    if isinstance(raw.get("hardware"), dict):
        return PayloadVariant.CURRENT
    return PayloadVariant.AGENT


def _extract_current(raw: Dict[str, Any]) -> RawSections:
    hardware = raw.get("hardware") or {}
    software = raw.get("software") if isinstance(raw.get("software"), dict) else {}
    return RawSections(
        cpu=hardware.get("cpu"),
        memory=hardware.get("memory"),
        storage=hardware.get("storage"),
        gpu=hardware.get("gpu"),
        os=software.get("os"),
        cpu_path="hardware.cpu.name",
        os_path="software.os.name",
    )


def _extract_agent(system: Dict[str, Any], prefix: str = "") -> RawSections:
    return RawSections(
        cpu=system.get("cpu"),
        memory=system.get("memory"),
        storage=system.get("storage"),
        gpu=system.get("gpu"),
        os=system.get("os"),
        cpu_path=f"{prefix}cpu.name",
        os_path=f"{prefix}os.name",
    )


def _extract_legacy(raw: Dict[str, Any]) -> RawSections:
    return RawSections(
        cpu=raw.get("cpu"),
        memory=raw.get("ram"),
        storage=raw.get("storage"),
        gpu=raw.get("gpu"),
        os=raw.get("system"),
        cpu_path="cpu.name",
        os_path="system.os",
    )


def extract_sections(raw: Dict[str, Any], variant: PayloadVariant) -> RawSections:
    if variant is PayloadVariant.CURRENT:
        return _extract_current(raw)
    if variant is PayloadVariant.AGENT_ENVELOPE:
        return _extract_agent(raw["hardwareData"], prefix="hardwareData.")
    if variant is PayloadVariant.AGENT:
        return _extract_agent(raw)
    return _extract_legacy(raw)


# --- Section mappers (tolerant of every known field spelling) ---

def _map_cpu(data: Any, name: str) -> CPUProfile:
    return CPUProfile(
        name=name,
        cores=_count(_first(data, "cores", "physicalCores")),
        frequency_mhz=to_megahertz(_first(data, "frequency", "frequencyMHz")),
        architecture=_text(_first(data, "architecture", "arch")),
        manufacturer=_text(_first(data, "manufacturer", "vendor")),
    )


def _map_memory(data: Any) -> MemoryProfile:
    total = to_bytes(_first(data, "total", "totalMemory"))
    available = to_bytes(_first(data, "available", "availableMemory"))
    raw_used = _first(data, "used", "usedMemory")
    used = to_bytes(raw_used) if raw_used is not None else max(0, total - available)
    if total:
        available = min(available, total)
        used = min(used, total)
    return MemoryProfile(
        total_bytes=total,
        available_bytes=available,
        used_bytes=used,
        speed_mhz=_optional_count(_first(data, "speed", "speedMHz")),
    )


def _map_storage_entry(entry: Dict[str, Any]) -> StorageDevice:
    total = to_bytes(_first(entry, "capacity", "total"))
    available = to_bytes(_first(entry, "freeSpace", "available"))
    raw_used = entry.get("used")
    used = to_bytes(raw_used) if raw_used is not None else max(0, total - available)
    if total:
        available = min(available, total)
        used = min(used, total)
    return StorageDevice(
        name=_text(entry.get("name")) or "Unknown",
        mount_point=_text(_first(entry, "mount_point", "mountPoint")) or "",
        total_bytes=total,
        available_bytes=available,
        used_bytes=used,
        file_system=_text(_first(entry, "file_system", "fileSystem")) or "unknown",
        kind=StorageKind.from_label(_first(entry, "type", "drive_type", "kind")),
    )


def _map_storage(data: Any) -> List[StorageDevice]:
    if not isinstance(data, list):
        return []
    return [_map_storage_entry(entry) for entry in data if isinstance(entry, dict)]


def _map_gpu_entry(entry: Dict[str, Any]) -> GPUDevice:
    return GPUDevice(
        name=_text(entry.get("name")) or "Unknown GPU",
        vendor=_text(entry.get("vendor")) or "unknown",
        memory_bytes=to_optional_bytes(_first(entry, "memory", "memoryBytes", "vram")),
        driver=_text(_first(entry, "driver", "driverVersion")),
    )


def _map_gpu(data: Any) -> List[GPUDevice]:
    # Legacy payloads carry a single GPU object
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        return []
    return [_map_gpu_entry(entry) for entry in data if isinstance(entry, dict)]


def _map_os(data: Any, name: str) -> OSProfile:
    return OSProfile(
        name=name,
        version=_text(_first(data, "version", "osVersion")) or "",
        arch=_text(_first(data, "arch", "architecture")) or "",
        build=_text(data.get("build")) if isinstance(data, dict) else None,
    )


# --- Public API ---

def normalize(raw: Any) -> HardwareProfile:
    """
    Convert any known payload generation into the canonical HardwareProfile.

    Missing optional fields become zero/empty/None. A missing CPU name or OS
    name raises MalformedInput listing every offending path.
    """
    variant = detect_variant(raw)
    sections = extract_sections(raw, variant)
    log.debug(f"Normalizing payload as variant: {variant.value}")

    cpu_name = _text(_first(sections.cpu, "name"))
    os_name = _text(_first(sections.os, "name", "os"))

    missing = []
    if cpu_name is None:
        missing.append(sections.cpu_path)
    if os_name is None:
        missing.append(sections.os_path)
    if missing:
        raise MalformedInput(
            f"Missing required hardware fields: {', '.join(missing)}",
            paths=missing,
        )

    return HardwareProfile(
        cpu=_map_cpu(sections.cpu, cpu_name),
        memory=_map_memory(sections.memory),
        storage=_map_storage(sections.storage),
        gpu=_map_gpu(sections.gpu),
        os=_map_os(sections.os, os_name),
    )


def extract_timestamp(raw: Any) -> Optional[datetime]:
    """Agent-side capture time, used as the record's createdAt when present."""
    if not isinstance(raw, dict) or raw.get("timestamp") is None:
        return None
    value = raw["timestamp"]
    if not isinstance(value, str):
        raise MalformedInput("timestamp must be an ISO-8601 string", paths=["timestamp"])
    try:
        return parse_isoformat(value)
    except ValueError:
        raise MalformedInput(f"Invalid timestamp: {value}", paths=["timestamp"])
