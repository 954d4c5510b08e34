import re
from dataclasses import dataclass
from typing import Optional

from .knowledge_base import EngineKnowledgeBase, default_knowledge_base

VIN_LENGTH = 17
# I, O and Q are excluded to avoid confusion with 1 and 0.
VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")

_TRANSLITERATION = {
    **{str(digit): digit for digit in range(10)},
    "A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "F": 6, "G": 7, "H": 8,
    "J": 1, "K": 2, "L": 3, "M": 4, "N": 5, "P": 7, "R": 9,
    "S": 2, "T": 3, "U": 4, "V": 5, "W": 6, "X": 7, "Y": 8, "Z": 9,
}
_WEIGHTS = (8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2)
_CHECK_DIGIT_INDEX = 8


@dataclass(frozen=True)
class VinParseResult:
    valid: bool
    vin: Optional[str] = None
    engine_family: Optional[str] = None
    check_digit_valid: Optional[bool] = None


def normalize_vin(identifier: Optional[str]) -> str:
    return (identifier or "").strip().upper()


def is_well_formed(vin: str) -> bool:
    return bool(VIN_PATTERN.match(vin))


def check_digit_valid(vin: str) -> bool:
    """ISO 3779 check digit (position 9). Only meaningful for well formed VINs."""
    if not is_well_formed(vin):
        return False
    total = sum(_TRANSLITERATION[char] * weight for char, weight in zip(vin, _WEIGHTS))
    remainder = total % 11
    expected = "X" if remainder == 10 else str(remainder)
    return vin[_CHECK_DIGIT_INDEX] == expected


def parse_vin(identifier: Optional[str], knowledge_base: Optional[EngineKnowledgeBase] = None) -> VinParseResult:
    vin = normalize_vin(identifier)
    if not is_well_formed(vin):
        return VinParseResult(valid=False)
    kb = knowledge_base or default_knowledge_base()
    return VinParseResult(
        valid=True,
        vin=vin,
        engine_family=kb.engine_family_for_vin(vin),
        check_digit_valid=check_digit_valid(vin),
    )
