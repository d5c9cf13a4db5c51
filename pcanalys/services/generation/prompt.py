from pcanalys.config.constants import GIB
from pcanalys.schemas.analysis import UsageProfile
from pcanalys.schemas.hardware import HardwareProfile

PROFILE_CONTEXT = {
    UsageProfile.GAMING: "focused on gaming performance",
    UsageProfile.WORK: "focused on productivity and work tasks",
    UsageProfile.CONTENT_CREATION: "focused on content creation and media production",
    UsageProfile.GENERAL: "for general computer use",
}

SECTIONS = [
    "# 📋 Summary",
    "# ⚡ Quick Wins",
    "# ⚙️ Settings & Drivers",
    "# 🔧 Upgrades",
    "## 💰 LOW (approximate budget: X-Y€)",
    "## 💸 MEDIUM (approximate budget: X-Y€)",
    "## 💎 HIGH (approximate budget: X-Y€)",
    "# 📈 Expected Gains",
]


def _gb(value: int) -> int:
    return round(value / GIB)


def format_hardware(profile: HardwareProfile) -> str:
    """Plain-text hardware summary fed to the model."""
    cpu = profile.cpu
    os_label = " ".join(part for part in (profile.os.name, profile.os.version) if part)
    lines = [
        f"OS: {os_label} ({profile.os.arch or 'unknown arch'})",
        f"CPU: {cpu.name} ({cpu.cores} cores, {cpu.frequency_mhz}MHz)",
        f"Memory: {_gb(profile.memory.used_bytes)}GB used / {_gb(profile.memory.total_bytes)}GB total",
    ]

    if profile.storage:
        drives = ", ".join(
            f"{s.name} ({_gb(s.total_bytes)}GB, {s.kind.value})" for s in profile.storage
        )
        lines.append(f"Storage: {drives}")
    else:
        lines.append("Storage: Not specified")

    if profile.gpu:
        gpus = ", ".join(
            f"{g.name} ({_gb(g.memory_bytes)}GB)" if g.memory_bytes else g.name
            for g in profile.gpu
        )
        lines.append(f"GPU: {gpus}")
    else:
        lines.append("GPU: Not detected")

    return "\n".join(lines)


def build_prompt(profile: HardwareProfile, usage: UsageProfile, language: str) -> str:
    """
    Recommendation prompt built from the canonical profile, never the raw payload.
    """
    sections = "\n\n".join(SECTIONS)
    return f"""You are an expert PC hardware advisor. Analyze this system and produce structured, concrete and actionable recommendations {PROFILE_CONTEXT[usage]}, formatted as Markdown.

{format_hardware(profile)}

Output constraints:
- Language: {language}.
- Be factual, concise and precise.
- Use Markdown headings, lists, tables and emphasis where helpful.
- Use exactly these sections:

{sections}

Expected details:
- Summary: 2-3 sentences on the overall state (strengths and weaknesses).
- Quick Wins: 3-5 free or immediate actions as a bulleted list, main action in **bold**.
- Settings & Drivers: 3-5 key settings or updates as a bulleted list, in **bold**.
- Upgrades: up to 3 upgrades per budget tier suited to the profile, with price ranges and compatibility (✅ yes / ❌ no).
- Expected Gains: a table with columns Tier, Improvement, Average gains.

Important:
- If information is incomplete (e.g. no GPU detected), suggest checks.
- Adapt priorities to the usage profile.
- NEVER invent precise part references that were not detected; stay generic but useful.
"""
