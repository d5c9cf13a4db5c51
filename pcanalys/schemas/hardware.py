from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class StorageKind(Enum):
    SSD = "SSD"
    HDD = "HDD"
    NVME = "NVME"
    UNKNOWN = "Unknown"

    @classmethod
    def from_label(cls, label: Any) -> "StorageKind":
        if not isinstance(label, str):
            return cls.UNKNOWN
        normalized = label.strip().upper()
        for kind in (cls.SSD, cls.HDD, cls.NVME):
            if normalized == kind.value:
                return kind
        return cls.UNKNOWN


@dataclass
class CPUProfile:
    name: str
    cores: int = 0
    frequency_mhz: int = 0
    architecture: Optional[str] = None
    manufacturer: Optional[str] = None


@dataclass
class MemoryProfile:
    """System RAM. All quantities in bytes."""
    total_bytes: int = 0
    available_bytes: int = 0
    used_bytes: int = 0
    speed_mhz: Optional[int] = None


@dataclass
class StorageDevice:
    name: str
    mount_point: str = ""
    total_bytes: int = 0
    available_bytes: int = 0
    used_bytes: int = 0
    file_system: str = "unknown"
    kind: StorageKind = StorageKind.UNKNOWN


@dataclass
class GPUDevice:
    name: str
    vendor: str = "unknown"
    memory_bytes: Optional[int] = None
    driver: Optional[str] = None


@dataclass
class OSProfile:
    name: str
    version: str = ""
    arch: str = ""
    build: Optional[str] = None


@dataclass
class HardwareProfile:
    """
    Canonical hardware model. Independent of the payload generation it was
    built from; every capacity is already in bytes.
    """
    cpu: CPUProfile
    os: OSProfile
    memory: MemoryProfile = field(default_factory=MemoryProfile)
    storage: List[StorageDevice] = field(default_factory=list)
    gpu: List[GPUDevice] = field(default_factory=list)

    @property
    def primary_gpu_memory_bytes(self) -> int:
        if not self.gpu:
            return 0
        return self.gpu[0].memory_bytes or 0

    def to_dict(self) -> Dict[str, Any]:
        """Wire/storage form (camelCase keys)."""
        return {
            "cpu": {
                "name": self.cpu.name,
                "cores": self.cpu.cores,
                "frequencyMHz": self.cpu.frequency_mhz,
                "architecture": self.cpu.architecture,
                "manufacturer": self.cpu.manufacturer,
            },
            "memory": {
                "totalBytes": self.memory.total_bytes,
                "availableBytes": self.memory.available_bytes,
                "usedBytes": self.memory.used_bytes,
                "speedMHz": self.memory.speed_mhz,
            },
            "storage": [
                {
                    "name": s.name,
                    "mountPoint": s.mount_point,
                    "totalBytes": s.total_bytes,
                    "availableBytes": s.available_bytes,
                    "usedBytes": s.used_bytes,
                    "fileSystem": s.file_system,
                    "kind": s.kind.value,
                }
                for s in self.storage
            ],
            "gpu": [
                {
                    "name": g.name,
                    "vendor": g.vendor,
                    "memoryBytes": g.memory_bytes,
                    "driver": g.driver,
                }
                for g in self.gpu
            ],
            "os": {
                "name": self.os.name,
                "version": self.os.version,
                "arch": self.os.arch,
                "build": self.os.build,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HardwareProfile":
        """Rehydrate a profile previously produced by to_dict()."""
        cpu = data["cpu"]
        memory = data.get("memory") or {}
        os_data = data["os"]
        return cls(
            cpu=CPUProfile(
                name=cpu["name"],
                cores=cpu.get("cores", 0),
                frequency_mhz=cpu.get("frequencyMHz", 0),
                architecture=cpu.get("architecture"),
                manufacturer=cpu.get("manufacturer"),
            ),
            memory=MemoryProfile(
                total_bytes=memory.get("totalBytes", 0),
                available_bytes=memory.get("availableBytes", 0),
                used_bytes=memory.get("usedBytes", 0),
                speed_mhz=memory.get("speedMHz"),
            ),
            storage=[
                StorageDevice(
                    name=s["name"],
                    mount_point=s.get("mountPoint", ""),
                    total_bytes=s.get("totalBytes", 0),
                    available_bytes=s.get("availableBytes", 0),
                    used_bytes=s.get("usedBytes", 0),
                    file_system=s.get("fileSystem", "unknown"),
                    kind=StorageKind.from_label(s.get("kind")),
                )
                for s in data.get("storage") or []
            ],
            gpu=[
                GPUDevice(
                    name=g["name"],
                    vendor=g.get("vendor", "unknown"),
                    memory_bytes=g.get("memoryBytes"),
                    driver=g.get("driver"),
                )
                for g in data.get("gpu") or []
            ],
            os=OSProfile(
                name=os_data["name"],
                version=os_data.get("version", ""),
                arch=os_data.get("arch", ""),
                build=os_data.get("build"),
            ),
        )
