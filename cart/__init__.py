# cart/__init__.py
from .pricing import COUPONS, CartTotals, CouponResult, apply_coupon, coupon_rate, summarize
from .store import CartLine, CartStore

__all__ = [
    "COUPONS",
    "CartLine",
    "CartStore",
    "CartTotals",
    "CouponResult",
    "apply_coupon",
    "coupon_rate",
    "summarize",
]
