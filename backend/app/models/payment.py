from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timeutils import utcnow


PAYMENT_BLOCKCHAINS = ("ethereum", "polygon", "solana")
PAYMENT_PURPOSES = ("job_posting", "premium_subscription", "job_boost", "featured_listing")
PAYMENT_STATUSES = ("pending", "confirmed", "failed")


class Payment(Base):
    """
    Append-only ledger of client-asserted blockchain payments.

    Nothing here is verified on-chain: the unique transaction hash only prevents the
    same hash from being recorded twice.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    transaction_hash = Column(String(200), unique=True, nullable=False, index=True)
    blockchain = Column(String(20), nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String(10), nullable=False)
    from_address = Column(String(120), nullable=False, default="")
    to_address = Column(String(120), nullable=False, default="")
    purpose = Column(String(40), nullable=False)
    related_job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    block_number = Column(Integer, nullable=True)
    gas_used = Column(String(60), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    related_job = relationship("Job")
