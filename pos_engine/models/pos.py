from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String

from ..db import Base


class Shift(Base):
    __tablename__ = "shifts"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    status = Column(String(20), default="active")  # active | paused | completed
    start_time = Column(DateTime, default=datetime.utcnow)
    end_time = Column(DateTime, nullable=True)
    assigned_user_id = Column(String, nullable=True)
    opening_balance = Column(Numeric(12, 2), default=0)
    closing_balance = Column(Numeric(12, 2), nullable=True)
    cash_discrepancy = Column(Numeric(12, 2), nullable=True)
    location_id = Column(String, nullable=True)


class Transaction(Base):
    __tablename__ = "transactions"
    id = Column(Integer, primary_key=True, index=True)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=True, index=True)
    customer_id = Column(Integer, nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    subtotal = Column(Numeric(12, 2), default=0)
    tax_amount = Column(Numeric(12, 2), default=0)
    tax_rate = Column(Numeric(6, 3), default=0)
    discount_total = Column(Numeric(12, 2), default=0)
    payment_method = Column(String(20), nullable=False)  # cash | credit | gift_card | ...
    is_split_payment = Column(Boolean, default=False)
    status = Column(String(20), default="completed")  # completed | refunded | voided
    created_at = Column(DateTime, default=datetime.utcnow)


class PaymentSplit(Base):
    __tablename__ = "payment_splits"
    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False, index=True)
    payment_method = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    gift_card_id = Column(Integer, nullable=True)
