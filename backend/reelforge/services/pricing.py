"""
Prices: credit cost per video duration and the purchasable credit packages.
"""
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Any


# Credits charged per generated video, keyed by duration in seconds.
# Jobs store the cost they paid, so editing this table never affects
# jobs already in flight.
CREDIT_COSTS: Dict[int, int] = {
    4: 1,
    10: 2,
    30: 5,
    60: 9,
}

DURATION_OPTIONS = tuple(sorted(CREDIT_COSTS))


@dataclass
class CreditPackage:
    """Represents a purchasable credit package."""
    id: str
    name: str
    credits: int
    price: int  # Minor units of `currency`
    currency: str = "TZS"
    popular: bool = False  # Mark as "most popular" in UI

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["price_per_credit"] = round(self.price / self.credits, 2)
        return data


# Available credit packages
CREDIT_PACKAGES: List[CreditPackage] = [
    CreditPackage(
        id="pkg_20",
        name="Starter Pack",
        credits=1,
        price=5000,
    ),
    CreditPackage(
        id="pkg_60",
        name="Creator Pack",
        credits=3,
        price=12000,
        popular=True,
    ),
    CreditPackage(
        id="pkg_150",
        name="Pro Pack",
        credits=6,
        price=25000,
    ),
]


def get_package(package_id: str) -> Optional[CreditPackage]:
    """Look up a package by id."""
    for package in CREDIT_PACKAGES:
        if package.id == package_id:
            return package
    return None
