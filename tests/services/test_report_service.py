"""
Tests for the report view built from stored analysis records.
"""

from datetime import datetime

from pcanalys.schemas.analysis import AnalysisRecord
from pcanalys.schemas.hardware import (
    CPUProfile,
    GPUDevice,
    HardwareProfile,
    MemoryProfile,
    OSProfile,
    StorageDevice,
    StorageKind,
)
from pcanalys.services.report_service import build_report, component_bars, summarize

GIB = 1024 ** 3
MB = 1024 * 1024


def make_profile(storage_kind=StorageKind.NVME, gpu=True):
    return HardwareProfile(
        cpu=CPUProfile(name="Ryzen 9 7950X", cores=16, frequency_mhz=4500),
        os=OSProfile(name="Windows", version="11", arch="x64"),
        memory=MemoryProfile(total_bytes=16 * GIB, available_bytes=4 * GIB, used_bytes=12 * GIB),
        storage=[
            StorageDevice(name="Boot", total_bytes=1000 * GIB, available_bytes=400 * GIB, kind=storage_kind),
            StorageDevice(name="Data", total_bytes=2000 * GIB, available_bytes=1500 * GIB, kind=StorageKind.HDD),
        ],
        gpu=[GPUDevice(name="RX 7900 XT", memory_bytes=6000 * MB)] if gpu else [],
    )


class TestComponentBars:

    def test_bars(self):
        bars = component_bars(make_profile())
        assert bars["cpu"] == 100            # 16 * 4500 / 50, capped
        assert bars["gpu"] == 50             # 6000 MB / 120
        assert bars["ram"] == 51             # 16384 MB / 320
        assert bars["storage"] == 90

    def test_spinning_boot_disk(self):
        assert component_bars(make_profile(StorageKind.HDD))["storage"] == 60

    def test_no_gpu(self):
        assert component_bars(make_profile(gpu=False))["gpu"] == 0

    def test_small_cpu_not_capped(self):
        profile = make_profile()
        profile.cpu = CPUProfile(name="Atom", cores=1, frequency_mhz=1600)
        assert component_bars(profile)["cpu"] == 32


class TestSummary:

    def test_figures(self):
        summary = summarize(make_profile())
        assert summary["cpu"] == "Ryzen 9 7950X (16 cores @ 4.5 GHz)"
        assert summary["memoryTotalGB"] == 16
        assert summary["memoryUsagePercent"] == 75
        assert summary["storageTotalGB"] == 3000
        assert summary["storageFreeGB"] == 1900
        assert summary["os"] == "Windows 11"

    def test_zero_memory_does_not_divide(self):
        profile = make_profile()
        profile.memory = MemoryProfile()
        assert summarize(profile)["memoryUsagePercent"] == 0


def test_build_report():
    record = AnalysisRecord(
        id="3f2504e0-4f89-41d3-9a0c-0305e82c3301",
        created_at=datetime(2024, 5, 1, 12, 0),
        raw_data={"source": "agent"},
        hardware_profile=make_profile(),
    )
    report = build_report(record)
    assert report["id"] == record.id
    assert report["rawData"] == {"source": "agent"}
    assert report["summary"]["bars"]["storage"] == 90
    assert set(report["summary"]["componentRatios"]) == {"cpu", "gpu", "ram"}
