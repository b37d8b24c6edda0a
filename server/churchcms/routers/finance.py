from __future__ import annotations

from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session, selectinload

from churchcms.auth.deps import require_module, require_roles
from churchcms.core.db import get_db
from churchcms.models.finance import FINANCE_TYPES, FinanceTransaction
from churchcms.models.member import Member
from churchcms.models.user import User
from churchcms.schemas.common import Envelope, MessageResponse
from churchcms.schemas.finance import FinanceCreate, FinanceOut, FinanceSummary, FinanceUpdate
from churchcms.services import notifications
from churchcms.services.audit import record_audit
from churchcms.services.reporting import filter_transactions, finance_summary
from churchcms.services.user_accounts import utc_naive

WRITE_ROLES = ("Admin", "Finance")

router = APIRouter(prefix="/finance", tags=["finance"])


def _get_transaction_or_404(db: Session, transaction_id: int) -> FinanceTransaction:
    transaction = (
        db.query(FinanceTransaction)
        .options(selectinload(FinanceTransaction.member))
        .filter(FinanceTransaction.id == transaction_id)
        .first()
    )
    if not transaction:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return transaction


def _ensure_type(value: str) -> str:
    if value not in FINANCE_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid transaction type")
    return value


def _ensure_member(db: Session, member_id: int | None) -> None:
    if member_id is not None and not db.get(Member, member_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")


def receipt_number_for(transaction: FinanceTransaction) -> str:
    return f"RCT-{transaction.date:%Y%m%d}-{transaction.id:06d}"


@router.post("", response_model=Envelope[FinanceOut], status_code=status.HTTP_201_CREATED)
def create_transaction(
    request: Request,
    payload: FinanceCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles(*WRITE_ROLES)),
) -> Envelope[FinanceOut]:
    entry_type = _ensure_type(payload.type)
    _ensure_member(db, payload.member_id)

    transaction = FinanceTransaction(
        type=entry_type,
        amount=payload.amount,
        member_id=payload.member_id,
        note=payload.note,
        date=utc_naive(payload.date) if payload.date else utc_naive(),
        payment_method=payload.payment_method,
        recorded_by_id=actor.id,
    )
    db.add(transaction)
    db.flush()
    if transaction.is_income:
        transaction.receipt_number = receipt_number_for(transaction)
    record_audit(
        db,
        actor=actor,
        action="donation_recorded",
        resource_type="finance",
        resource_id=transaction.id,
        details=f"Recorded {entry_type} of {payload.amount:.2f}",
        request=request,
    )
    db.commit()

    background_tasks.add_task(notifications.dispatch_finance_entry, transaction.id)
    return Envelope(data=FinanceOut.from_orm(_get_transaction_or_404(db, transaction.id)))


@router.get("", response_model=Envelope[list[FinanceOut]])
def list_transactions(
    *,
    type: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_module("finance")),
) -> Envelope[list[FinanceOut]]:
    if type:
        _ensure_type(type)
    query = db.query(FinanceTransaction).options(selectinload(FinanceTransaction.member))
    query = filter_transactions(query, type=type, start_date=start_date, end_date=end_date)
    transactions = query.order_by(FinanceTransaction.date.desc(), FinanceTransaction.id.desc()).all()
    return Envelope(data=[FinanceOut.from_orm(item) for item in transactions])


@router.get("/summary", response_model=Envelope[FinanceSummary])
def transactions_summary(
    *,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_module("finance")),
) -> Envelope[FinanceSummary]:
    return Envelope(data=finance_summary(db, start_date=start_date, end_date=end_date))


@router.get("/{transaction_id}", response_model=Envelope[FinanceOut])
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_module("finance")),
) -> Envelope[FinanceOut]:
    return Envelope(data=FinanceOut.from_orm(_get_transaction_or_404(db, transaction_id)))


@router.put("/{transaction_id}", response_model=Envelope[FinanceOut])
def update_transaction(
    transaction_id: int,
    request: Request,
    payload: FinanceUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles(*WRITE_ROLES)),
) -> Envelope[FinanceOut]:
    transaction = _get_transaction_or_404(db, transaction_id)
    updates = payload.model_dump(exclude_unset=True)

    if updates.get("type") is not None:
        transaction.type = _ensure_type(updates["type"])
    if updates.get("amount") is not None:
        transaction.amount = updates["amount"]
    if "member_id" in updates:
        _ensure_member(db, updates["member_id"])
        transaction.member_id = updates["member_id"]
    if "note" in updates:
        transaction.note = (updates["note"] or "").strip() or None
    if updates.get("date") is not None:
        transaction.date = utc_naive(updates["date"])
    if updates.get("payment_method") is not None:
        transaction.payment_method = updates["payment_method"]

    if transaction.is_income and not transaction.receipt_number:
        transaction.receipt_number = receipt_number_for(transaction)
    elif not transaction.is_income:
        transaction.receipt_number = None

    record_audit(
        db,
        actor=actor,
        action="transaction_updated",
        resource_type="finance",
        resource_id=transaction.id,
        details=f"Updated {transaction.type} transaction {transaction.id}",
        request=request,
    )
    db.commit()
    return Envelope(data=FinanceOut.from_orm(_get_transaction_or_404(db, transaction.id)))


@router.delete("/{transaction_id}", response_model=MessageResponse)
def delete_transaction(
    transaction_id: int,
    request: Request,
    db: Session = Depends(get_db),
    actor: User = Depends(require_roles(*WRITE_ROLES)),
) -> MessageResponse:
    transaction = _get_transaction_or_404(db, transaction_id)
    details = f"Deleted {transaction.type} transaction {transaction.id}"
    db.delete(transaction)
    record_audit(
        db,
        actor=actor,
        action="transaction_deleted",
        resource_type="finance",
        resource_id=transaction_id,
        details=details,
        request=request,
    )
    db.commit()
    return MessageResponse(message="Transaction deleted")
