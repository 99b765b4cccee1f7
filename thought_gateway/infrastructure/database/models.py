"""SQLAlchemy ORM models for the thought bank, credit ledger and entitlement events"""

from sqlalchemy import Column, Date, DateTime, Integer, JSON, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class ThoughtBank(Base):
    """Per-label, per-day pool of vetted thoughts"""

    __tablename__ = "thought_bank"

    label = Column(Text, primary_key=True)
    day = Column(Date, primary_key=True)
    thoughts = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class LedgerAccount(Base):
    """Credit balances for one device/account; used never exceeds granted"""

    __tablename__ = "ledger_account"

    account_id = Column(Text, primary_key=True)
    pro_granted = Column(Integer, nullable=False, default=0)
    pro_used = Column(Integer, nullable=False, default=0)
    chat_granted = Column(Integer, nullable=False, default=0)
    chat_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class EntitlementEvent(Base):
    """Processed store notification; event_id uniqueness is the dedupe guard"""

    __tablename__ = "entitlement_event"

    event_id = Column(Text, primary_key=True)
    subject_id = Column(Text, nullable=False, index=True)
    product_id = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
