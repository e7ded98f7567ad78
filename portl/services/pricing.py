"""
Ticket pricing and promotion discounts.

Price model:
- A ticket type has a base price and optional price tiers.
- Tiers are tried by priority, highest first; the first active one wins.
  - TIME_WINDOW: active when starts_at <= at <= ends_at (both required)
  - ALLOCATION: active while allocation_sold < allocation_total
    (no allocation_total = always active)
- No active tier: the base price applies.

Discount model:
- PERCENT values are basis points: floor(amount * value / 10000)
- FIXED values are whole currency units, once per order (ORDER scope) or once
  per ticket (ITEM scope)
- ITEM scope only touches lines whose ticket type is linked to the promotion;
  a promotion with no linked ticket types applies to every line
- A discount never exceeds the amount it applies to

Everything here is pure: callers pass in the rows and the clock.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from portl.core.exceptions import CheckoutError
from portl.schemas.enums import DiscountType, PricingStrategy, PromotionScope

BASIS_POINTS = 10000


@dataclass
class ResolvedPrice:
    unit_price: int
    tier: Optional[object] = None  # PriceTier

    @property
    def price_tier_id(self) -> Optional[str]:
        return self.tier.id if self.tier is not None else None

    @property
    def price_tier_name(self) -> Optional[str]:
        return self.tier.name if self.tier is not None else None


@dataclass
class PricedLine:
    ticket_type_id: str
    quantity: int
    unit_price: int

    @property
    def total(self) -> int:
        return self.unit_price * self.quantity


def is_tier_active(tier, at: datetime) -> bool:
    if tier.strategy == PricingStrategy.TIME_WINDOW.value:
        if tier.starts_at is None or tier.ends_at is None:
            return False
        return tier.starts_at <= at <= tier.ends_at
    if tier.strategy == PricingStrategy.ALLOCATION.value:
        if tier.allocation_total is None:
            return True
        return tier.allocation_sold < tier.allocation_total
    return False


def resolve_active_tier(tiers: Iterable, at: datetime):
    """Highest-priority active tier, or None."""
    for tier in sorted(tiers, key=lambda t: t.priority, reverse=True):
        if is_tier_active(tier, at):
            return tier
    return None


def resolve_price(ticket_type, at: datetime) -> ResolvedPrice:
    tier = resolve_active_tier(ticket_type.price_tiers, at)
    if tier is None:
        return ResolvedPrice(unit_price=ticket_type.base_price)
    return ResolvedPrice(unit_price=tier.price, tier=tier)


def tier_has_room(tier, quantity: int) -> bool:
    """Soft check used before confirmation; the ledger has the final word."""
    if tier is None or tier.strategy != PricingStrategy.ALLOCATION.value:
        return True
    if tier.allocation_total is None:
        return True
    return tier.allocation_sold + quantity <= tier.allocation_total


def _discount_amount(discount_type: str, value: int, base_amount: int, units: int = 1) -> int:
    if base_amount <= 0:
        return 0
    if discount_type == DiscountType.PERCENT.value:
        discount = base_amount * value // BASIS_POINTS
    else:
        discount = value * units
    return max(0, min(discount, base_amount))


def calculate_discount(promotion, lines: Iterable[PricedLine]) -> int:
    """Discount ``promotion`` grants on ``lines``."""
    lines = list(lines)
    if promotion.applies_to == PromotionScope.ITEM.value:
        linked = promotion.ticket_type_ids
        total = 0
        for line in lines:
            if linked and line.ticket_type_id not in linked:
                continue
            total += _discount_amount(
                promotion.discount_type,
                promotion.discount_value,
                line.total,
                units=line.quantity,
            )
        return total

    subtotal = sum(line.total for line in lines)
    return _discount_amount(promotion.discount_type, promotion.discount_value, subtotal)


def promotion_applies_to_lines(promotion, lines: Iterable[PricedLine]) -> bool:
    linked = promotion.ticket_type_ids
    if not linked:
        return True
    return any(line.ticket_type_id in linked for line in lines)


def validate_promotion(
    promotion,
    *,
    at: datetime,
    event_id: str,
    lines: Iterable[PricedLine],
    voucher=None,
    redemptions_in_use: int = 0,
    user_redemptions: int = 0,
) -> None:
    """
    Raise CheckoutError if ``promotion`` cannot be applied to an order.

    Args:
        redemptions_in_use: confirmed redemptions plus pending orders holding it
        user_redemptions: confirmed orders of this buyer that used it
    """
    if promotion.event_id != event_id:
        raise CheckoutError("This code is not valid for this event")
    if not promotion.is_active:
        raise CheckoutError("This promotion is no longer active")
    if promotion.valid_from is not None and at < promotion.valid_from:
        raise CheckoutError("This code is not yet active")
    if promotion.valid_until is not None and at > promotion.valid_until:
        raise CheckoutError("This code has expired")

    if promotion.requires_code:
        if voucher is None or voucher.promotion_id != promotion.id:
            raise CheckoutError("A valid voucher code is required")
    if voucher is not None and voucher.max_redemptions is not None:
        if voucher.redeemed_count >= voucher.max_redemptions:
            raise CheckoutError("This code has reached its usage limit")

    if promotion.max_redemptions is not None and redemptions_in_use >= promotion.max_redemptions:
        raise CheckoutError("This promotion has reached its usage limit")
    if promotion.max_per_user is not None and user_redemptions >= promotion.max_per_user:
        raise CheckoutError("You have already used this promotion")

    if not promotion_applies_to_lines(promotion, lines):
        raise CheckoutError("This code does not apply to the tickets in your order")


def order_total(subtotal: int, discount_amount: int, service_fee: int = 0) -> int:
    return max(0, subtotal - discount_amount + service_fee)
