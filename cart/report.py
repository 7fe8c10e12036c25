# cart/report.py
import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader

from .pricing import summarize
from .store import CartStore

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
)

CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")


def _money(amount: Decimal, symbol: str = CURRENCY_SYMBOL) -> str:
    return f"{symbol}{amount:.2f}"


def build_cart_summary(store: CartStore, coupon_code: Optional[str] = None) -> str:
    template = env.get_template("cart_summary.txt")
    lines = store.lines
    totals = summarize(lines, coupon_code)

    line_data = [
        {
            "name": line.item.name,
            "quantity": line.quantity,
            "unit_str": _money(line.item.price),
            "total_str": _money(line.line_total),
        }
        for line in lines
    ]

    ctx = {
        "lines": line_data,
        "subtotal_str": _money(totals.subtotal),
        "discount_str": _money(totals.discount),
        "total_str": _money(totals.total),
        "coupon": totals.coupon,
    }
    return template.render(**ctx)
