from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String

from ..db import Base


class LoyaltyProgramRow(Base):
    __tablename__ = "loyalty_programs"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=True)
    points_per_dollar = Column(Numeric(10, 4), nullable=False, default=1)
    minimum_points_redeem = Column(Integer, nullable=False, default=0)
    points_value_cents = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=True)
    location_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

