"""
Reglas del programa de lealtad: valor de puntos, puntos usables, validación
de canje y puntos ganados.

Ninguna de estas funciones lanza excepciones: un programa ausente o montos
no numéricos se tratan como "nada que calcular" y devuelven 0 (o un
resultado inválido en el caso del validador).
"""

from __future__ import annotations

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_engine.core.logging import get_logger
from pos_engine.models.loyalty import LoyaltyProgramRow

log = get_logger(__name__)

NO_PROGRAM = "No loyalty program found"
NOT_POSITIVE = "Points to redeem must be greater than 0"
INSUFFICIENT = "Insufficient points balance"


class LoyaltyProgram(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    points_per_dollar: float = Field(ge=0)
    minimum_points_redeem: int = Field(ge=0)
    points_value_cents: int = Field(gt=0)
    is_active: bool = True


class RedemptionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    error: Optional[str] = None


class RedemptionPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    points: int = 0
    value: float = 0.0
    remaining_due: float = 0.0


def _num(v: Any) -> Optional[float]:
    # bool es int en Python; no lo aceptamos como monto
    if isinstance(v, bool) or v is None:
        return None
    try:
        f = float(v)
    except (TypeError, ValueError, OverflowError):
        return None
    # NaN e infinitos no son montos; floor(inf) lanzaría OverflowError
    if not math.isfinite(f):
        return None
    return f


def points_value(points: Any, program: Optional[LoyaltyProgram]) -> float:
    """Valor monetario de `points` según el programa (centavos -> unidad)."""
    p = _num(points)
    if program is None or p is None or p <= 0:
        return 0.0
    value = p * program.points_value_cents / 100
    return value if math.isfinite(value) else 0.0


def max_usable_points(
    available_points: Any, max_amount: Any, program: Optional[LoyaltyProgram]
) -> int:
    """
    Máximo de puntos canjeables: acotado por el saldo del cliente y por lo
    que cubre `max_amount`. Siempre redondea hacia abajo.
    """
    available = _num(available_points)
    amount = _num(max_amount)
    if program is None or available is None or amount is None:
        return 0
    if available <= 0 or amount <= 0:
        return 0
    by_value = amount * 100 / program.points_value_cents
    if not math.isfinite(by_value):
        return int(math.floor(available))
    return int(min(math.floor(available), math.floor(by_value)))


def validate_redemption(
    points_to_redeem: Any, available_points: Any, program: Optional[LoyaltyProgram]
) -> RedemptionResult:
    # el orden de las verificaciones es parte del contrato
    if program is None:
        return RedemptionResult(is_valid=False, error=NO_PROGRAM)

    points = _num(points_to_redeem)
    if points is None or points <= 0:
        return RedemptionResult(is_valid=False, error=NOT_POSITIVE)

    available = _num(available_points) or 0.0
    if points > available:
        return RedemptionResult(is_valid=False, error=INSUFFICIENT)

    if points < program.minimum_points_redeem:
        return RedemptionResult(
            is_valid=False,
            error=f"Minimum redemption is {program.minimum_points_redeem} points",
        )

    return RedemptionResult(is_valid=True)


def points_earned(amount: Any, program: Optional[LoyaltyProgram]) -> int:
    """Puntos ganados por una venta de `amount`; nunca fracciones."""
    a = _num(amount)
    if program is None or a is None or a <= 0:
        return 0
    earned = a * program.points_per_dollar
    return math.floor(earned) if math.isfinite(earned) else 0


def plan_redemption(
    total_amount: Any, available_points: Any, program: Optional[LoyaltyProgram]
) -> RedemptionPlan:
    """
    Cuántos puntos usar para pagar `total_amount`: los necesarios para cubrir
    el total (redondeando hacia arriba) sin pasar del saldo disponible.
    """
    total = _num(total_amount)
    available = _num(available_points)
    if program is None or total is None or total <= 0:
        return RedemptionPlan()
    if available is None or available <= 0 or not math.isfinite(total * 100):
        return RedemptionPlan(remaining_due=round(total, 2))

    cents_due = round(total * 100)
    points_needed = -(-cents_due // program.points_value_cents)
    points = int(min(math.floor(available), points_needed))
    value = min(total, points * program.points_value_cents / 100)
    return RedemptionPlan(
        points=points,
        value=round(value, 2),
        remaining_due=round(max(0.0, total - value), 2),
    )


def load_loyalty_program(db: Session, program_id: Optional[int] = None) -> Optional[LoyaltyProgram]:
    """
    Programa activo solicitado por id, o el activo más reciente si no se pide
    ninguno. None si no existe o está inactivo.
    """
    if program_id is not None:
        row = db.execute(
            select(LoyaltyProgramRow).where(
                LoyaltyProgramRow.id == program_id, LoyaltyProgramRow.is_active.is_(True)
            )
        ).scalar_one_or_none()
    else:
        row = (
            db.execute(
                select(LoyaltyProgramRow)
                .where(LoyaltyProgramRow.is_active.is_(True))
                .order_by(LoyaltyProgramRow.created_at.desc(), LoyaltyProgramRow.id.desc())
                .limit(1)
            )
            .scalars()
            .first()
        )
    if row is None:
        return None
    try:
        return LoyaltyProgram.model_validate(row)
    except ValidationError as e:
        # fila fuera de reglas (p.ej. points_value_cents = 0): se trata como ausente
        log.warning("loyalty_program_invalid", program_id=row.id, errors=e.error_count())
        return None
