"""Extract display strings from ``free -m``, ``df -h`` and ``top -bn1`` output."""
import re

from glowworm.schemas.analysis import ResourceUsage

RESOURCE_COMMAND = "free -m && df -h && top -bn1 | head -5"

UNKNOWN = "unknown"

_CPU_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*%?\s*us")
_DF_ROW = re.compile(r"^(\S+)\s+(\S+)\s+(\S+)\s+(\S+)\s+(\d+%)\s+(/\S*)$")


def extract_memory(output: str) -> str:
    for line in output.splitlines():
        if line.strip().startswith("Mem:"):
            parts = line.split()
            if len(parts) >= 3:
                return f"{parts[2]}/{parts[1]} MB"
    return UNKNOWN


def extract_cpu(output: str) -> str:
    for line in output.splitlines():
        if "%Cpu" in line:
            match = _CPU_PATTERN.search(line.split(":", 1)[-1])
            return f"{match.group(1)}%" if match else UNKNOWN
    return UNKNOWN


def extract_storage(output: str) -> str:
    rows = [m for m in (_DF_ROW.match(line.strip()) for line in output.splitlines()) if m]
    if not rows:
        return UNKNOWN
    root = next((m for m in rows if m.group(6) == "/"), rows[0])
    return f"{root.group(3)}/{root.group(4)}"


def parse_resource_usage(output: str) -> ResourceUsage:
    return ResourceUsage(
        memory=extract_memory(output),
        cpu=extract_cpu(output),
        storage=extract_storage(output),
    )
