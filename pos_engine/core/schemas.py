from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from pos_engine.services.cart import LineKind
from pos_engine.services.checkout import SplitAmount
from pos_engine.services.loyalty import LoyaltyProgram


class ProgramRef(BaseModel):
    # inf/NaN no serializan a JSON; se rechazan con 422
    model_config = ConfigDict(allow_inf_nan=False)

    # programa inline o por id (se busca en loyalty_programs)
    program: Optional[LoyaltyProgram] = None
    program_id: Optional[int] = None


class PointsValueIn(ProgramRef):
    points: float


class MaxUsableIn(ProgramRef):
    available_points: float
    max_amount: float


class RedemptionIn(ProgramRef):
    points_to_redeem: float
    available_points: float


class PointsEarnedIn(ProgramRef):
    amount: float


class RedemptionPlanIn(ProgramRef):
    total_amount: float
    available_points: float


class QuoteLine(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    id: int
    name: str
    price: float = Field(ge=0)
    quantity: int = Field(default=1, ge=0)
    kind: LineKind = "inventory"


class QuoteIn(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    lines: List[QuoteLine] = Field(default_factory=list)
    tax_rate: float = Field(default=0.0, ge=0)
    discount_amount: float = Field(default=0.0, ge=0)
    cash_received: Optional[float] = None
    splits: List[SplitAmount] = Field(default_factory=list)


class ClosePreviewIn(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    opening_balance: float = 0.0
    closing_balance: float
    cash_refunds: float = Field(default=0.0, ge=0)
