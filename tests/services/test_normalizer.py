"""
Unit tests for the hardware payload normalizer.
Verifies:
1. Every payload generation maps to the same canonical profile.
2. Byte/MB unit reconciliation and the GHz rule.
3. Required identity fields raise MalformedInput with their paths.
"""

import pytest
from datetime import datetime

from pcanalys.schemas.hardware import StorageKind
from pcanalys.services.errors import MalformedInput
from pcanalys.services.normalizer import (
    PayloadVariant,
    detect_variant,
    extract_timestamp,
    normalize,
    to_bytes,
    to_megahertz,
)

GIB = 1024 ** 3


def current_payload():
    return {
        "hardware": {
            "cpu": {"name": "AMD Ryzen 5 5600X", "cores": 6, "frequency": 3700},
            "memory": {"total": 16 * GIB, "available": 10 * GIB},
            "storage": [
                {"name": "Samsung 970", "mountPoint": "C:\\", "total": 512 * GIB,
                 "available": 200 * GIB, "fileSystem": "NTFS", "type": "NVMe"},
            ],
            "gpu": [{"name": "RTX 3060", "vendor": "NVIDIA", "memory": 12 * GIB}],
        },
        "software": {"os": {"name": "Windows", "version": "11", "arch": "x64"}},
    }


def agent_system_info():
    return {
        "os": {"name": "Windows", "version": "11", "arch": "x64"},
        "cpu": {"name": "AMD Ryzen 5 5600X", "cores": 6, "frequency": 3700},
        "memory": {"total": 16 * GIB, "available": 10 * GIB},
        "storage": [
            {"name": "Samsung 970", "mount_point": "C:\\", "total": 512 * GIB,
             "available": 200 * GIB, "file_system": "NTFS", "drive_type": "NVME"},
        ],
        "gpu": [{"name": "RTX 3060", "vendor": "NVIDIA", "memory": 12 * GIB}],
    }


def legacy_payload():
    return {
        "cpu": {"name": "AMD Ryzen 5 5600X", "cores": 6, "threads": 12, "frequency": 3.7},
        "gpu": {"name": "RTX 3060", "vendor": "NVIDIA", "memory": 12 * 1024},
        "ram": {"totalMemory": 16 * 1024, "availableMemory": 10 * 1024, "speed": 3200, "type": "DDR4"},
        "storage": [
            {"name": "Samsung 970", "type": "NVME", "capacity": 512 * 1024, "freeSpace": 200 * 1024},
        ],
        "system": {"os": "Windows", "osVersion": "11", "architecture": "x64"},
        "motherboard": {"manufacturer": "ASUS"},
    }


class TestVariantDetection:

    def test_detects_each_generation(self):
        assert detect_variant(current_payload()) is PayloadVariant.CURRENT
        assert detect_variant({"hardwareData": agent_system_info()}) is PayloadVariant.AGENT_ENVELOPE
        assert detect_variant(agent_system_info()) is PayloadVariant.AGENT
        assert detect_variant(legacy_payload()) is PayloadVariant.LEGACY

    def test_newest_generation_wins_when_keys_overlap(self):
        payload = current_payload()
        payload["ram"] = {"totalMemory": 8192}
        assert detect_variant(payload) is PayloadVariant.CURRENT

    def test_non_object_payload_rejected(self):
        with pytest.raises(MalformedInput) as exc:
            detect_variant(["not", "an", "object"])
        assert exc.value.paths == ["root"]


class TestShapeInvariance:
    """All generations describing the same machine produce the same profile."""

    def test_core_fields_match_across_generations(self):
        profiles = [
            normalize(current_payload()),
            normalize({"hardwareData": agent_system_info()}),
            normalize(agent_system_info()),
            normalize(legacy_payload()),
        ]
        for profile in profiles:
            assert profile.cpu.name == "AMD Ryzen 5 5600X"
            assert profile.cpu.cores == 6
            assert profile.cpu.frequency_mhz == 3700
            assert profile.memory.total_bytes == 16 * GIB
            assert profile.memory.available_bytes == 10 * GIB
            assert profile.memory.used_bytes == 6 * GIB
            assert profile.storage[0].total_bytes == 512 * GIB
            assert profile.storage[0].available_bytes == 200 * GIB
            assert profile.storage[0].kind == StorageKind.NVME
            assert profile.gpu[0].name == "RTX 3060"
            assert profile.gpu[0].memory_bytes == 12 * GIB
            assert profile.os.name == "Windows"
            assert profile.os.version == "11"
            assert profile.os.arch == "x64"

    def test_storage_key_spellings(self):
        profile = normalize(agent_system_info())
        drive = profile.storage[0]
        assert drive.mount_point == "C:\\"
        assert drive.file_system == "NTFS"

    def test_legacy_single_gpu_object_becomes_list(self):
        profile = normalize(legacy_payload())
        assert len(profile.gpu) == 1
        assert profile.gpu[0].vendor == "NVIDIA"

    def test_legacy_memory_speed_kept(self):
        assert normalize(legacy_payload()).memory.speed_mhz == 3200


class TestUnitReconciliation:

    def test_bytes_and_megabytes_agree(self):
        assert to_bytes(17179869184) == 17179869184
        assert to_bytes(16384) == 17179869184

    def test_threshold_is_read_as_megabytes(self):
        # Exactly 1,048,576 is ambiguous; the MB reading is chosen
        assert to_bytes(1048576) == 1048576 * 1048576
        assert to_bytes(1048577) == 1048577

    @pytest.mark.parametrize("value", [None, -5, 0, "abc", True, float("nan")])
    def test_unusable_values_become_zero(self, value):
        assert to_bytes(value) == 0

    def test_numeric_strings_accepted(self):
        assert to_bytes("16384") == 16 * GIB

    def test_frequency_ghz_rule(self):
        assert to_megahertz(3.6) == 3600
        assert to_megahertz(3600) == 3600
        assert to_megahertz(None) == 0

    def test_memory_totals_in_either_unit_normalize_identically(self):
        in_bytes = current_payload()
        in_mb = current_payload()
        in_mb["hardware"]["memory"] = {"total": 16384, "available": 10240}
        assert normalize(in_bytes).memory == normalize(in_mb).memory


class TestOptionalFields:

    def test_missing_optional_sections_default_to_empty(self):
        profile = normalize({
            "hardware": {"cpu": {"name": "Intel i5"}, "memory": {}},
            "software": {"os": {"name": "Linux"}},
        })
        assert profile.cpu.cores == 0
        assert profile.cpu.frequency_mhz == 0
        assert profile.memory.total_bytes == 0
        assert profile.storage == []
        assert profile.gpu == []
        assert profile.os.version == ""

    def test_storage_used_computed_and_clamped(self):
        payload = agent_system_info()
        payload["storage"] = [
            {"name": "A", "total": 100 * GIB, "available": 40 * GIB},
            {"name": "B", "total": 100 * GIB, "available": 150 * GIB},
        ]
        first, second = normalize(payload).storage
        assert first.used_bytes == 60 * GIB
        assert second.used_bytes == 0
        assert second.available_bytes == 100 * GIB

    def test_supplied_used_value_wins(self):
        payload = agent_system_info()
        payload["memory"] = {"total": 16 * GIB, "available": 10 * GIB, "used": 7 * GIB}
        assert normalize(payload).memory.used_bytes == 7 * GIB

    def test_gpu_without_memory_keeps_none(self):
        payload = agent_system_info()
        payload["gpu"] = [{"name": "Intel UHD"}]
        profile = normalize(payload)
        assert profile.gpu[0].memory_bytes is None
        assert profile.primary_gpu_memory_bytes == 0


class TestRequiredFields:

    def test_missing_cpu_name_reports_path(self):
        payload = current_payload()
        del payload["hardware"]["cpu"]["name"]
        with pytest.raises(MalformedInput) as exc:
            normalize(payload)
        assert exc.value.paths == ["hardware.cpu.name"]

    def test_missing_both_identity_fields(self):
        payload = legacy_payload()
        del payload["cpu"]
        del payload["system"]
        with pytest.raises(MalformedInput) as exc:
            normalize(payload)
        assert exc.value.paths == ["cpu.name", "system.os"]

    def test_envelope_paths_are_prefixed(self):
        info = agent_system_info()
        info["os"] = {"version": "11"}
        with pytest.raises(MalformedInput) as exc:
            normalize({"hardwareData": info})
        assert exc.value.paths == ["hardwareData.os.name"]

    def test_partial_payload_still_reports_paths(self):
        with pytest.raises(MalformedInput) as exc:
            normalize({"hardware": {"cpu": {"cores": 4}}})
        assert "hardware.cpu.name" in exc.value.paths
        assert "software.os.name" in exc.value.paths

    def test_blank_name_is_missing(self):
        payload = agent_system_info()
        payload["cpu"]["name"] = "   "
        with pytest.raises(MalformedInput):
            normalize(payload)


class TestTimestamp:

    def test_absent_timestamp(self):
        assert extract_timestamp(current_payload()) is None

    def test_iso_timestamp_parsed_to_naive_utc(self):
        payload = current_payload()
        payload["timestamp"] = "2024-03-01T10:30:00.000Z"
        assert extract_timestamp(payload) == datetime(2024, 3, 1, 10, 30)

    def test_invalid_timestamp(self):
        payload = current_payload()
        payload["timestamp"] = "yesterday"
        with pytest.raises(MalformedInput) as exc:
            extract_timestamp(payload)
        assert exc.value.paths == ["timestamp"]
