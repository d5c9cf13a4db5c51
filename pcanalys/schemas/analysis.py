import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pcanalys.schemas.hardware import HardwareProfile
from pcanalys.services.errors import InvalidRequest


class UsageProfile(str, Enum):
    """What the machine is for. Drives score weighting and prompt context."""
    GAMING = "gaming"
    WORK = "work"
    CONTENT_CREATION = "content-creation"
    GENERAL = "general"


# Every label a client may send, canonical values included. No fallthrough.
USAGE_PROFILE_LABELS: Dict[str, UsageProfile] = {
    "gaming": UsageProfile.GAMING,
    "work": UsageProfile.WORK,
    "productivity": UsageProfile.WORK,
    "content-creation": UsageProfile.CONTENT_CREATION,
    "content_creation": UsageProfile.CONTENT_CREATION,
    "general": UsageProfile.GENERAL,
    "development": UsageProfile.GENERAL,
    "office": UsageProfile.GENERAL,
    "student": UsageProfile.GENERAL,
}


def resolve_usage_profile(label: Any) -> UsageProfile:
    """Map a user-facing label onto the closed UsageProfile set."""
    if isinstance(label, UsageProfile):
        return label
    if isinstance(label, str) and label in USAGE_PROFILE_LABELS:
        return USAGE_PROFILE_LABELS[label]
    allowed = ", ".join(sorted(USAGE_PROFILE_LABELS))
    raise InvalidRequest(
        f"Profile must be one of: {allowed}",
        details=[{"path": "usageProfile", "value": label if isinstance(label, str) else None}],
    )


def is_valid_analysis_id(value: Any) -> bool:
    """Canonical lowercase or uppercase hyphenated UUID string."""
    if not isinstance(value, str):
        return False
    try:
        return str(uuid.UUID(value)) == value.lower()
    except ValueError:
        return False


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return to_utc_naive(value).isoformat(timespec="milliseconds") + "Z"


def parse_isoformat(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return to_utc_naive(datetime.fromisoformat(value))


@dataclass
class Recommendations:
    content: str
    usage_profile: UsageProfile
    performance_score: int
    generated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "usageProfile": self.usage_profile.value,
            "performanceScore": self.performance_score,
            "generatedAt": isoformat(self.generated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recommendations":
        return cls(
            content=data.get("content", ""),
            usage_profile=UsageProfile(data["usageProfile"]),
            performance_score=data.get("performanceScore", 0),
            generated_at=parse_isoformat(data["generatedAt"]),
        )


@dataclass
class AnalysisRecord:
    """
    One ingested snapshot. id, created_at, raw_data and hardware_profile never
    change after creation; the recommendation fields are replaced per cycle.
    """
    id: str
    created_at: datetime
    raw_data: Dict[str, Any]
    hardware_profile: HardwareProfile
    usage_profile: Optional[UsageProfile] = None
    recommendations: Optional[Recommendations] = None
    performance_score: Optional[int] = None
    updated_at: Optional[datetime] = None

    def to_dict(self, include_raw: bool = True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "createdAt": isoformat(self.created_at),
            "hardwareProfile": self.hardware_profile.to_dict(),
            "usageProfile": self.usage_profile.value if self.usage_profile else None,
            "recommendations": self.recommendations.to_dict() if self.recommendations else None,
            "performanceScore": self.performance_score,
        }
        if include_raw:
            data["rawData"] = self.raw_data
        return data
