"""
OD classes: pipe outside-diameter categories and their standard stock lengths.
"""

from types import MappingProxyType

from errors import ValidationError

# Standard stock length per OD class, in feet.
STOCK_LENGTHS_FT = MappingProxyType({
    "1.9": 24,        # 1.9" OD
    "2.375": 25,      # 2.375" OD
    "3.5 .216": 32,   # 3.5" OD x .216 wall
    "3.5 .12": 26,    # 3.5" OD x .120 wall
})

INCHES_PER_FOOT = 12


def classify(diameter: float) -> str:
    """
    Map a measured diameter (inches) to an OD class key.

    - diameter <= 2.0  -> "1.9"
    - diameter <= 2.5  -> "2.375"
    - anything else    -> "3.5 .12"

    A diameter alone cannot tell the 3.5" wall thicknesses apart, so the
    thin wall is the default. Out-of-range values fall back to it as well.
    """
    if diameter <= 2.0:
        return "1.9"
    if diameter <= 2.5:
        return "2.375"
    if 3.4 < diameter <= 3.6:
        return "3.5 .12"
    return "3.5 .12"


def stock_length_inches(od_class: str, table=STOCK_LENGTHS_FT) -> float:
    try:
        feet = table[od_class]
    except KeyError:
        raise ValidationError("Unknown OD class: {}".format(od_class))
    return feet * INCHES_PER_FOOT
