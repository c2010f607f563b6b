"""
Resource limit normalization: memory strings to bytes, CPU counts to nano-CPUs
"""

import math
import re

from .errors import ErrorKind, ParseResult

NANO_CPUS_PER_CPU = 1_000_000_000

MEMORY_UNITS = {
    "k": 1024,
    "m": 1024**2,
    "g": 1024**3,
    "t": 1024**4,
}

_MEMORY_PATTERN = re.compile(r"^(?P<number>\d*)(?P<unit>[kmgt]?)$")

BYTE_SUFFIXES = ("B", "KB", "MB", "GB", "TB")


def parse_memory_limit(value: str, field: str = "memory_limit") -> ParseResult[int]:
    """
    Convert a memory limit such as '512m' or '1g' into bytes.

    Suffixes k, m, g and t (any case) are powers of 1024; a bare number is
    already in bytes.
    """
    match = _MEMORY_PATTERN.fullmatch(value.strip().lower())
    if not match or not match.group("number"):
        return ParseResult.failure(
            field,
            f"Invalid memory limit format: '{value}'. Use an integer with an optional k, m, g or t suffix",
            ErrorKind.INVALID_RESOURCE_LIMIT,
        )

    multiplier = MEMORY_UNITS.get(match.group("unit"), 1)
    return ParseResult.success(int(match.group("number")) * multiplier)


def parse_cpu_limit(value: float, field: str = "cpu_limit") -> ParseResult[int]:
    """Convert a CPU count (e.g. 1.5) into nano-CPU units"""
    nano_cpus = value * NANO_CPUS_PER_CPU
    if not math.isfinite(nano_cpus) or value < 0:
        return ParseResult.failure(
            field,
            f"Invalid CPU limit: {value}. Must be a finite, non-negative number of CPUs",
            ErrorKind.INVALID_RESOURCE_LIMIT,
        )
    return ParseResult.success(int(round(nano_cpus)))


def format_bytes(num_bytes: int) -> str:
    """Human readable size, e.g. 1536 -> '1.5 KB'"""
    number = float(num_bytes)
    index = 0
    while abs(number) >= 1024 and index < len(BYTE_SUFFIXES) - 1:
        number /= 1024
        index += 1
    return f"{number:,.1f} {BYTE_SUFFIXES[index]}"
