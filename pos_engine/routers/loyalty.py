from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pos_engine.core.schemas import (
    MaxUsableIn,
    PointsEarnedIn,
    PointsValueIn,
    ProgramRef,
    RedemptionIn,
    RedemptionPlanIn,
)
from pos_engine.db import get_db
from pos_engine.services import loyalty
from pos_engine.services.loyalty import LoyaltyProgram

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


def _program(body: ProgramRef, db: Session) -> Optional[LoyaltyProgram]:
    if body.program is not None:
        return body.program
    # sin programa inline: el pedido por id o el activo más reciente
    return loyalty.load_loyalty_program(db, body.program_id)


@router.post("/points/value")
def points_value(body: PointsValueIn, db: Session = Depends(get_db)):
    program = _program(body, db)
    return {
        "points": body.points,
        "value": loyalty.points_value(body.points, program),
        "program_id": program.id if program else None,
    }


@router.post("/points/max-usable")
def max_usable(body: MaxUsableIn, db: Session = Depends(get_db)):
    program = _program(body, db)
    pts = loyalty.max_usable_points(body.available_points, body.max_amount, program)
    return {
        "max_points": pts,
        "value": loyalty.points_value(pts, program),
        "program_id": program.id if program else None,
    }


@router.post("/redemption/validate")
def validate(body: RedemptionIn, db: Session = Depends(get_db)):
    program = _program(body, db)
    res = loyalty.validate_redemption(body.points_to_redeem, body.available_points, program)
    out = res.model_dump()
    if res.is_valid:
        out["value"] = loyalty.points_value(body.points_to_redeem, program)
    return out


@router.post("/points/earned")
def earned(body: PointsEarnedIn, db: Session = Depends(get_db)):
    program = _program(body, db)
    return {
        "amount": body.amount,
        "points": loyalty.points_earned(body.amount, program),
        "program_id": program.id if program else None,
    }


@router.post("/redemption/plan")
def plan(body: RedemptionPlanIn, db: Session = Depends(get_db)):
    program = _program(body, db)
    p = loyalty.plan_redemption(body.total_amount, body.available_points, program)
    return {**p.model_dump(), "program_id": program.id if program else None}
