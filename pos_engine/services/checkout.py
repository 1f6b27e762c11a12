from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from pos_engine.core.config import settings
from pos_engine.services.cart import Cart, total as cart_total


class OrderTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: float
    discount: float
    tax_rate: float
    tax: float
    total: float


class SplitAmount(BaseModel):
    payment_method: str
    amount: float
    gift_card_id: Optional[int] = None


def money(v: float) -> float:
    return round(float(v), 2)


def order_totals(cart: Cart, tax_rate: float = 0.0, discount_amount: float = 0.0) -> OrderTotals:
    """
    Subtotal del carrito, descuento (nunca por encima del subtotal) e impuesto
    calculado sobre el monto ya descontado. `tax_rate` es porcentaje (8.25 = 8.25%).
    """
    subtotal = cart_total(cart)
    discount = min(max(0.0, float(discount_amount or 0)), subtotal)
    after_discount = subtotal - discount
    rate = max(0.0, float(tax_rate or 0))
    tax = after_discount * rate / 100
    return OrderTotals(
        subtotal=money(subtotal),
        discount=money(discount),
        tax_rate=rate,
        tax=money(tax),
        total=money(after_discount + tax),
    )


def change_due(cash_received: Optional[float], order_total: float) -> float:
    if cash_received is None:
        return 0.0
    return money(max(0.0, float(cash_received) - float(order_total)))


def split_payments_match(
    splits: Iterable[SplitAmount], final_total: float, tolerance: Optional[float] = None
) -> bool:
    tol = settings.split_tolerance if tolerance is None else tolerance
    paid = sum(float(s.amount or 0) for s in splits)
    # tolerancia absoluta (el redondeo por línea deja centavos sueltos)
    return abs(paid - float(final_total)) <= tol + 1e-9


def gift_card_balance_after(current_balance: float, amount: float) -> float:
    return money(max(0.0, float(current_balance) - float(amount)))
