"""
Payment bookkeeping.

Transactions are NOT verified on-chain. A payment row records a client-asserted
transaction hash; the unique index on `transaction_hash` is the only guarantee,
and it only prevents the same hash from being recorded twice. Addresses and
hashes get a shape check so obvious garbage is rejected early.
"""
import calendar
import logging
import re
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings
from ..models.job import Job
from ..models.payment import Payment
from ..utils.error_handlers import ConflictError, ValidationError, get_error_message
from ..utils.timeutils import utcnow

logger = logging.getLogger(__name__)

EVM_CHAINS = ("ethereum", "polygon")
EVM_CURRENCY = {"ethereum": "ETH", "polygon": "MATIC"}

_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_EVM_TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_BASE58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_SOLANA_ADDRESS_RE = re.compile(rf"^[{_BASE58}]{{32,44}}$")
_SOLANA_SIGNATURE_RE = re.compile(rf"^[{_BASE58}]{{64,88}}$")


def is_valid_address(address: str | None, blockchain: str) -> bool:
    if not address:
        return False
    if blockchain == "solana":
        return bool(_SOLANA_ADDRESS_RE.match(address))
    return bool(_EVM_ADDRESS_RE.match(address))


def is_valid_tx_hash(tx_hash: str | None, blockchain: str) -> bool:
    if not tx_hash:
        return False
    if blockchain == "solana":
        return bool(_SOLANA_SIGNATURE_RE.match(tx_hash))
    return bool(_EVM_TX_HASH_RE.match(tx_hash))


def add_months(dt: datetime, months: int) -> datetime:
    """Calendar-month arithmetic; the day is clamped to the target month's length (Jan 31 + 1 -> Feb 28/29)."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def platform_fees(settings: Settings) -> dict:
    return {
        "ethereum": {
            "amount": settings.platform_fee_eth,
            "currency": "ETH",
            "adminWallet": settings.admin_wallet_eth,
        },
        "polygon": {
            "amount": settings.platform_fee_eth,
            "currency": "MATIC",
            "adminWallet": settings.admin_wallet_eth,
        },
        "solana": {
            "amount": settings.platform_fee_sol,
            "currency": "SOL",
            "adminWallet": settings.admin_wallet_sol,
        },
    }


class PaymentLedger:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def _check(self, *, tx_hash: str, blockchain: str, from_address: str) -> None:
        if not is_valid_tx_hash(tx_hash, blockchain):
            raise ValidationError(f"Invalid transaction hash for {blockchain}")
        # fromAddress is optional; when given it must look like an address on that chain.
        if from_address and not is_valid_address(from_address, blockchain):
            raise ValidationError(f"Invalid {blockchain} wallet address")

    def _insert(self, payment: Payment) -> Payment:
        # Single insert; the unique index on transaction_hash decides duplicates, no read-then-write.
        try:
            with self.db.begin_nested():
                self.db.add(payment)
                self.db.flush()
        except IntegrityError as e:
            logger.info("Duplicate payment hash rejected: %s", payment.transaction_hash)
            raise ConflictError(get_error_message("payment_exists")) from e
        return payment

    def record_job_payment(
        self,
        *,
        user_id: int,
        tx_hash: str,
        blockchain: str,
        from_address: str,
        job_id: int | None = None,
    ) -> Payment:
        """Record a job-posting fee as confirmed; marks the caller's job as paid when job_id is given."""
        self._check(tx_hash=tx_hash, blockchain=blockchain, from_address=from_address)

        if blockchain == "solana":
            amount, currency, to_address = self.settings.platform_fee_sol, "SOL", self.settings.admin_wallet_sol
        else:
            amount, currency = self.settings.platform_fee_eth, EVM_CURRENCY[blockchain]
            to_address = self.settings.admin_wallet_eth

        job = None
        if job_id is not None:
            job = self.db.query(Job).filter(Job.id == job_id, Job.posted_by == user_id).first()
            if job is None:
                raise ValidationError(get_error_message("job_not_owned"))

        now = utcnow()
        payment = self._insert(
            Payment(
                user_id=user_id,
                transaction_hash=tx_hash,
                blockchain=blockchain,
                amount=amount,
                currency=currency,
                from_address=from_address,
                to_address=to_address,
                purpose="job_posting",
                related_job_id=job.id if job else None,
                status="confirmed",
                created_at=now,
                confirmed_at=now,
            )
        )

        if job is not None:
            job.payment_verified = True
            job.transaction_hash = tx_hash
            job.blockchain = blockchain
        return payment

    def record_premium(
        self,
        *,
        user,
        tx_hash: str,
        blockchain: str,
        amount: float,
        currency: str,
        from_address: str,
        duration_months: int = 1,
    ) -> tuple[Payment, datetime]:
        """Record a premium subscription and extend the user's premium to now + duration_months."""
        self._check(tx_hash=tx_hash, blockchain=blockchain, from_address=from_address)
        if amount is None or amount <= 0:
            raise ValidationError("Amount must be greater than 0")
        if not currency:
            raise ValidationError("Currency is required")
        if duration_months < 1:
            raise ValidationError("durationMonths must be at least 1")

        now = utcnow()
        to_address = self.settings.admin_wallet_sol if blockchain == "solana" else self.settings.admin_wallet_eth
        payment = self._insert(
            Payment(
                user_id=user.id,
                transaction_hash=tx_hash,
                blockchain=blockchain,
                amount=float(amount),
                currency=currency.strip().upper(),
                from_address=from_address,
                to_address=to_address,
                purpose="premium_subscription",
                status="confirmed",
                created_at=now,
                confirmed_at=now,
            )
        )

        expires_at = add_months(now, duration_months)
        user.is_premium = True
        user.premium_expires_at = expires_at
        return payment, expires_at
