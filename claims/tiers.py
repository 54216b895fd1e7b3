"""
Premium Tier Table

Maps an invoice price to a premium tier. Prices and premiums are integers
in the smallest currency unit (6 decimals: 1 USDC = 1_000_000).

Table invariants (checked at construction):
- At least one range; the first starts at 0
- Ranges are contiguous: next.min_price == prev.max_price + 1
- Both bounds are inclusive; only the last range may be unbounded
  (max_price None) and it must be
- Tier ids are unique; premiums are non-negative

With these rules every non-negative price lands in exactly one tier.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.errors import PriceOutOfRangeException, TierTableException

USDC = 1_000_000


class TierRange(BaseModel):
    """One inclusive price band."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tier_id: int = Field(..., ge=1)
    min_price: int = Field(..., ge=0)
    max_price: Optional[int] = Field(default=None, description="Inclusive; None = unbounded")
    base_premium: int = Field(..., ge=0)

    def contains(self, price: int) -> bool:
        if price < self.min_price:
            return False
        return self.max_price is None or price <= self.max_price


class TierTable:
    """
    Validated, ordered tier partition.

    Example:
        >>> table = TierTable.default()
        >>> table.classify(500 * USDC)
        2
    """

    def __init__(self, ranges: Iterable[TierRange]) -> None:
        self.ranges: tuple[TierRange, ...] = tuple(ranges)
        self._validate()
        self._by_id = {r.tier_id: r for r in self.ranges}

    @classmethod
    def default(cls) -> "TierTable":
        return cls([
            TierRange(tier_id=1, min_price=0, max_price=500 * USDC - 1, base_premium=25 * USDC),
            TierRange(tier_id=2, min_price=500 * USDC, max_price=1000 * USDC, base_premium=50 * USDC),
            TierRange(tier_id=3, min_price=1000 * USDC + 1, max_price=None, base_premium=100 * USDC),
        ])

    @classmethod
    def from_dicts(cls, data: Iterable[dict[str, Any]]) -> "TierTable":
        """
        Build a table from plain dicts (config files).

        Raises:
            TierTableException: malformed entries or broken invariants
        """
        try:
            ranges = [TierRange.model_validate(item) for item in data]
        except ValidationError as e:
            raise TierTableException(f"Invalid tier range: {e}") from e
        return cls(ranges)

    def _validate(self) -> None:
        if not self.ranges:
            raise TierTableException("Tier table must contain at least one range")
        if self.ranges[0].min_price != 0:
            raise TierTableException(
                "First tier must start at price 0",
                details={"min_price": self.ranges[0].min_price},
            )

        seen: set[int] = set()
        for i, r in enumerate(self.ranges):
            if r.tier_id in seen:
                raise TierTableException(f"Duplicate tier id {r.tier_id}")
            seen.add(r.tier_id)

            is_last = i == len(self.ranges) - 1
            if r.max_price is None:
                if not is_last:
                    raise TierTableException(
                        f"Only the last tier may be unbounded (tier {r.tier_id})"
                    )
                continue
            if is_last:
                raise TierTableException("Last tier must be unbounded")
            if r.max_price < r.min_price:
                raise TierTableException(f"Tier {r.tier_id} has max_price below min_price")

            nxt = self.ranges[i + 1]
            if nxt.min_price != r.max_price + 1:
                raise TierTableException(
                    f"Tiers {r.tier_id} and {nxt.tier_id} are not contiguous",
                    details={"max_price": r.max_price, "next_min_price": nxt.min_price},
                )

    def classify(self, price: int) -> int:
        """
        Tier id whose range contains price.

        Raises:
            PriceOutOfRangeException: no range contains price
        """
        for r in self.ranges:
            if r.contains(price):
                return r.tier_id
        raise PriceOutOfRangeException(f"No tier covers price {price}", price=price)

    def base_premium(self, tier_id: int) -> int:
        """
        Raises:
            PriceOutOfRangeException: unknown tier id
        """
        try:
            return self._by_id[tier_id].base_premium
        except KeyError:
            raise PriceOutOfRangeException(f"Unknown tier {tier_id}") from None

    def tier_ids(self) -> list[int]:
        return [r.tier_id for r in self.ranges]

    def to_dicts(self) -> list[dict[str, Any]]:
        return [r.model_dump() for r in self.ranges]

    def __iter__(self):
        return iter(self.ranges)

    def __len__(self) -> int:
        return len(self.ranges)


__all__ = [
    "USDC",
    "TierRange",
    "TierTable",
]
