"""Brand presentation chosen by request host."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Brand:
    """Presentation details for one brand.

    ``footer`` is trusted markup and is inserted into pages unescaped.
    """
    name: str
    tagline: str
    footer: str
    primary_colour: str
    title_suffix: str


PLATFORM21 = Brand(
    name="Platform21",
    tagline="Secure Client Intake",
    footer="Platform21 &middot; South East Queensland",
    primary_colour="#1e3a5f",
    title_suffix="Platform21",
)

ECOMOW = Brand(
    name="EcoMow",
    tagline="Secure Client Intake",
    footer="EcoMow Sustainable Gardening &middot; South East Queensland",
    primary_colour="#ef382a",
    title_suffix="EcoMow",
)

DEFAULT_BRAND = PLATFORM21


def get_brand(hostname: Optional[str]) -> Brand:
    if hostname and "ecomow" in hostname:
        return ECOMOW
    return DEFAULT_BRAND
