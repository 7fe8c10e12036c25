# cart/pricing.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from .store import CartLine

COUPONS = {
    "FIRSTTIME": Decimal("0.10"),
    "SAVE20": Decimal("0.20"),
    "FREESHIP": Decimal("0.15"),
}

COUPON_APPLIED = "Coupon applied successfully!"
COUPON_UNKNOWN = "No such coupon exists"

_ZERO = Decimal("0")


@dataclass(frozen=True)
class CouponResult:
    code: str
    valid: bool
    rate: Decimal
    discount: Decimal
    message: str


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    coupon: Optional[CouponResult] = None


def _normalize(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def subtotal(lines: Iterable[CartLine]) -> Decimal:
    return sum((line.line_total for line in lines), _ZERO)


def coupon_rate(code: Optional[str]) -> Decimal:
    """Discount rate for a coupon code; unknown or empty codes give 0."""
    return COUPONS.get(_normalize(code), _ZERO)


def discount(amount: Decimal, code: Optional[str]) -> Decimal:
    return amount * coupon_rate(code)


def total(amount: Decimal, discount_amount: Decimal) -> Decimal:
    return amount - discount_amount


def apply_coupon(lines: Iterable[CartLine], code: Optional[str]) -> CouponResult:
    normalized = _normalize(code)
    amount = subtotal(lines)
    if normalized in COUPONS:
        rate = COUPONS[normalized]
        return CouponResult(normalized, True, rate, amount * rate, COUPON_APPLIED)
    return CouponResult(normalized, False, _ZERO, _ZERO, COUPON_UNKNOWN)


def summarize(lines: Iterable[CartLine], code: Optional[str] = None) -> CartTotals:
    lines = list(lines)
    amount = subtotal(lines)
    coupon = apply_coupon(lines, code) if code else None
    off = coupon.discount if coupon else _ZERO
    return CartTotals(subtotal=amount, discount=off, total=total(amount, off), coupon=coupon)
