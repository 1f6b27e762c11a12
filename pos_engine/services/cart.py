"""
Carrito del registro como snapshot inmutable.

Cada operación recibe un `Cart` y devuelve uno nuevo; las líneas se
identifican por el par (id, kind). El precio y el nombre se copian al
agregar: cambios posteriores al artículo no afectan la línea.
"""

from __future__ import annotations

from typing import Any, Literal, Mapping, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

LineKind = Literal["service", "inventory"]


class CatalogItem(BaseModel):
    """Servicio o artículo de inventario tal como llega del catálogo."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: int
    name: str
    price: float = Field(ge=0)


class CartLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=0)
    kind: LineKind

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


class Cart(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: Tuple[CartLine, ...] = ()

    def find(self, id: int, kind: LineKind) -> CartLine | None:
        for line in self.lines:
            if line.id == id and line.kind == kind:
                return line
        return None

    def __len__(self) -> int:
        return len(self.lines)


def _as_item(item: Union[CatalogItem, Mapping[str, Any], Any]) -> CatalogItem:
    if isinstance(item, CatalogItem):
        return item
    return CatalogItem.model_validate(item)


def add_item(cart: Cart, item, kind: LineKind) -> Cart:
    """Suma 1 a la línea (id, kind) o agrega una nueva con cantidad 1."""
    it = _as_item(item)
    if cart.find(it.id, kind) is not None:
        lines = tuple(
            ln.model_copy(update={"quantity": ln.quantity + 1})
            if ln.id == it.id and ln.kind == kind
            else ln
            for ln in cart.lines
        )
        return Cart(lines=lines)
    new_line = CartLine(id=it.id, name=it.name, unit_price=float(it.price), quantity=1, kind=kind)
    return Cart(lines=cart.lines + (new_line,))


def remove_item(cart: Cart, id: int, kind: LineKind) -> Cart:
    # si no existe la línea no pasa nada
    return Cart(lines=tuple(ln for ln in cart.lines if not (ln.id == id and ln.kind == kind)))


def update_quantity(cart: Cart, id: int, kind: LineKind, quantity: int) -> Cart:
    """
    Fija la cantidad de una línea. Cantidades negativas se ignoran; cantidad 0
    elimina la línea para que el carrito vacío no tenga líneas fantasma.
    """
    if quantity < 0:
        return cart
    if quantity == 0:
        return remove_item(cart, id, kind)
    lines = tuple(
        ln.model_copy(update={"quantity": int(quantity)}) if ln.id == id and ln.kind == kind else ln
        for ln in cart.lines
    )
    return Cart(lines=lines)


def clear(cart: Cart) -> Cart:
    return Cart()


def total(cart: Cart) -> float:
    return sum((ln.line_total for ln in cart.lines), 0.0)


def item_count(cart: Cart) -> int:
    return sum(ln.quantity for ln in cart.lines)
