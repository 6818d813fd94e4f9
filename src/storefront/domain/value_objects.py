from __future__ import annotations

from enum import Enum


class Availability(str, Enum):
    """Stock state of an affiliate offer as stored in affiliate_links.availability.

    Using (str, Enum) for Python 3.10 compatibility (StrEnum requires 3.11+).
    """

    IN_STOCK = "in-stock"
    LIMITED = "limited"
    OUT_OF_STOCK = "out-of-stock"
