"""Per-item staging: distribution policies and pick packing."""

from .distribution import (
    Distribution,
    DistributionDetails,
    DistributionHelper,
    IndexSafety,
    MicroDistributionHelper,
    TruncateMode,
    remap,
    sanitize_index,
    truncate,
)
from .packing import PickPacker, PickUnpacker

__all__ = [
    "Distribution",
    "DistributionDetails",
    "DistributionHelper",
    "IndexSafety",
    "MicroDistributionHelper",
    "PickPacker",
    "PickUnpacker",
    "TruncateMode",
    "remap",
    "sanitize_index",
    "truncate",
]
