import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session, joinedload

from ..config import Settings, get_settings
from ..database import get_db
from ..models.payment import Payment
from ..models.user import User
from ..schemas.public import payment_public
from ..services.payments import EVM_CHAINS, PaymentLedger, platform_fees
from ..utils.dependencies import get_current_user
from ..utils.error_handlers import get_error_message
from ..utils.timeutils import to_iso
from ..utils.validation import validate_choice

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])

PREMIUM_BLOCKCHAINS = EVM_CHAINS + ("solana",)


class EthPayment(BaseModel):
    transactionHash: str | None = None
    blockchain: str | None = None
    fromAddress: str | None = None
    jobId: int | None = None


class SolPayment(BaseModel):
    transactionSignature: str | None = None
    fromAddress: str | None = None
    jobId: int | None = None


class PremiumPayment(BaseModel):
    transactionHash: str | None = None
    blockchain: str | None = None
    amount: float | None = None
    currency: str | None = None
    fromAddress: str | None = None
    durationMonths: int = 1


@router.post("/verify-eth")
def verify_eth(
    payload: EthPayment,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    if not payload.transactionHash or not payload.blockchain:
        raise HTTPException(status_code=400, detail="Transaction hash and blockchain are required")
    blockchain = validate_choice(payload.blockchain, "blockchain", EVM_CHAINS)

    payment = PaymentLedger(db, settings).record_job_payment(
        user_id=int(user["sub"]),
        tx_hash=payload.transactionHash.strip(),
        blockchain=blockchain,
        from_address=(payload.fromAddress or "").strip(),
        job_id=payload.jobId,
    )
    db.commit()
    db.refresh(payment)
    logger.info("Recorded %s job payment id=%s job=%s", blockchain, payment.id, payload.jobId)
    return {"message": "Payment verified successfully", "payment": payment_public(payment)}


@router.post("/verify-sol")
def verify_sol(
    payload: SolPayment,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    if not payload.transactionSignature:
        raise HTTPException(status_code=400, detail="Transaction signature is required")

    payment = PaymentLedger(db, settings).record_job_payment(
        user_id=int(user["sub"]),
        tx_hash=payload.transactionSignature.strip(),
        blockchain="solana",
        from_address=(payload.fromAddress or "").strip(),
        job_id=payload.jobId,
    )
    db.commit()
    db.refresh(payment)
    logger.info("Recorded solana job payment id=%s job=%s", payment.id, payload.jobId)
    return {"message": "Payment verified successfully", "payment": payment_public(payment)}


@router.get("/history")
def history(db: Session = Depends(get_db), user=Depends(get_current_user)):
    payments = (
        db.query(Payment)
        .options(joinedload(Payment.related_job))
        .filter(Payment.user_id == int(user["sub"]))
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
    return {"payments": [payment_public(p) for p in payments]}


@router.get("/fees")
def fees(settings: Settings = Depends(get_settings)):
    return platform_fees(settings)


@router.post("/premium-subscription")
def premium_subscription(
    payload: PremiumPayment,
    db: Session = Depends(get_db),
    user=Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    if not payload.transactionHash or not payload.blockchain:
        raise HTTPException(status_code=400, detail="Transaction hash and blockchain are required")
    blockchain = validate_choice(payload.blockchain, "blockchain", PREMIUM_BLOCKCHAINS)

    current = db.query(User).filter(User.id == int(user["sub"])).first()
    if not current:
        raise HTTPException(status_code=404, detail=get_error_message("user_not_found"))

    payment, expires_at = PaymentLedger(db, settings).record_premium(
        user=current,
        tx_hash=payload.transactionHash.strip(),
        blockchain=blockchain,
        amount=payload.amount,
        currency=payload.currency or "",
        from_address=(payload.fromAddress or "").strip(),
        duration_months=payload.durationMonths,
    )
    db.commit()
    logger.info("Premium activated user=%s payment=%s until=%s", current.id, payment.id, expires_at)
    return {"message": "Premium subscription activated", "expiresAt": to_iso(expires_at)}
