"""
Data structures for cut requests, stock bars and optimization results.
All lengths are in inches unless a name says otherwise.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def format_number(value) -> str:
    """Render a number the way the labels show it: 10 not 10.0, 14.5 as is."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _positive_number(data: Dict[str, Any], key: str) -> float:
    raw = data.get(key)
    if isinstance(raw, bool):
        raise ValueError("{} must be a positive number".format(key.capitalize()))
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValueError("{} must be a positive number".format(key.capitalize()))
    if not value > 0:
        raise ValueError("{} must be a positive number".format(key.capitalize()))
    return value


def _od_class(data: Dict[str, Any]) -> Optional[str]:
    raw = data.get("od")
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        # numeric keys read as their label: 1.9 -> "1.9", 2.0 -> "2"
        return format_number(raw)
    raise ValueError("OD class must be a string such as \"1.9\" or \"3.5 .216\"")


# ------------------------------
# Input
# ------------------------------

@dataclass(frozen=True)
class CutRequest:
    length: float
    diameter: float
    od_class: Optional[str] = None
    part_number: Optional[str] = None
    drill_operations: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CutRequest":
        """Build from the JSON shape {length, diameter, od?, partNumber?, drillOperations?}."""
        if not isinstance(data, dict):
            raise ValueError("Each pipe must be an object")
        return cls(
            length=_positive_number(data, "length"),
            diameter=_positive_number(data, "diameter"),
            od_class=_od_class(data),
            part_number=data.get("partNumber"),
            drill_operations=data.get("drillOperations"),
        )


# ------------------------------
# Packing output
# ------------------------------

@dataclass
class CutAssignment:
    length: float
    diameter: float
    position: float
    rfid_code: Optional[str] = None
    part_number: Optional[str] = None
    drill_operations: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "length": self.length,
            "diameter": self.diameter,
            "position": self.position,
        }
        if self.rfid_code is not None:
            out["rfidCode"] = self.rfid_code
        if self.part_number is not None:
            out["partNumber"] = self.part_number
        if self.drill_operations is not None:
            out["drillOperations"] = self.drill_operations
        return out


@dataclass
class StockBar:
    """
    One stock pipe in a cutting plan. Cuts are laid out contiguously from the
    start; the waste element is reserved at the end, so
    remaining_length == stock_length - WASTE_ELEMENT - sum(cut lengths).
    """
    stock_index: int
    stock_length: float
    remaining_length: float
    cuts: List[CutAssignment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stockIndex": self.stock_index,
            "stockLength": self.stock_length,
            "cuts": [c.to_dict() for c in self.cuts],
            "remainingLength": self.remaining_length,
        }


@dataclass
class OptimizationResult:
    stock_pieces: int = 0
    wastage: float = 0.0
    total_length: float = 0.0
    utilization: float = 0.0
    cutting_plan: List[StockBar] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stockPieces": self.stock_pieces,
            "wastage": self.wastage,
            "totalLength": self.total_length,
            "utilization": self.utilization,
            "cuttingPlan": [b.to_dict() for b in self.cutting_plan],
        }
