from fastapi import APIRouter, HTTPException

from pos_engine.core.config import settings
from pos_engine.core.schemas import QuoteIn
from pos_engine.services import cart as carts
from pos_engine.services import checkout

router = APIRouter(prefix="/pos", tags=["pos-cart"])


@router.post("/cart/quote")
def quote(body: QuoteIn):
    """
    Arma el carrito a partir de las líneas (las repetidas se fusionan) y
    devuelve totales, cambio y si los pagos divididos cuadran.
    """
    cart = carts.Cart()
    for ln in body.lines:
        prev = cart.find(ln.id, ln.kind)
        cart = carts.add_item(cart, ln, ln.kind)
        cart = carts.update_quantity(cart, ln.id, ln.kind, (prev.quantity if prev else 0) + ln.quantity)

    totals = checkout.order_totals(cart, body.tax_rate, body.discount_amount)
    if body.splits and not checkout.split_payments_match(body.splits, totals.total):
        raise HTTPException(status_code=422, detail="split_payments_mismatch")

    return {
        "lines": [ln.model_dump() for ln in cart.lines],
        "item_count": carts.item_count(cart),
        **totals.model_dump(),
        "currency": settings.currency,
        "change_due": checkout.change_due(body.cash_received, totals.total),
    }
