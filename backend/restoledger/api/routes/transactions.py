from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from restoledger.api.deps import db, can_view, can_manage, restaurant_id
from restoledger.schemas.transaction import (
    SyncRecurringOut,
    TransferIn,
    TransferOut,
    TxCreate,
    TxListOut,
    TxOut,
    TxStatus,
    TxType,
    TxUpdate,
)
from restoledger.services.audit import log_event
from restoledger.services.recurrence import sync_recurring
from restoledger.services.transactions import (
    create_transaction,
    delete_transaction,
    list_transactions,
    update_transaction,
)
from restoledger.services.transfers import create_transfer

router = APIRouter(prefix="/financial/transactions", tags=["transactions"])


def _tx_details(t) -> dict:
    return {
        "description": t.description,
        "amount": str(t.amount),
        "type": t.type,
        "status": t.status,
        "due_date": str(t.due_date),
        "bank_account_id": t.bank_account_id,
    }


@router.get("", response_model=TxListOut)
def list_tx(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    status: TxStatus | None = Query(None),
    tx_type: TxType | None = Query(None, alias="type"),
    s: Session = Depends(db),
    u=Depends(can_view),
    rid: int = Depends(restaurant_id),
):
    txs, summary = list_transactions(s, rid, start_date, end_date, status, tx_type)
    return {"transactions": txs, "summary": summary}


@router.post("", response_model=TxOut, status_code=201)
def add_tx(body: TxCreate, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    t = create_transaction(s, rid, body.model_dump())
    log_event(
        s,
        username=u.get("sub"),
        action="tx.create",
        entity_type="transaction",
        entity_id=t.id,
        details=_tx_details(t),
        restaurant_id=rid,
    )
    return t


@router.post("/transfer", response_model=TransferOut, status_code=201)
def transfer(body: TransferIn, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    debit, credit = create_transfer(
        s,
        rid,
        body.from_account_id,
        body.to_account_id,
        body.amount,
        transfer_date=body.transfer_date,
        description=body.description,
    )
    log_event(
        s,
        username=u.get("sub"),
        action="tx.transfer",
        entity_type="transaction",
        entity_id=debit.id,
        details={
            "from_account_id": body.from_account_id,
            "to_account_id": body.to_account_id,
            "amount": str(debit.amount),
            "debit_id": debit.id,
            "credit_id": credit.id,
        },
        restaurant_id=rid,
    )
    return {"success": True, "debit_id": debit.id, "credit_id": credit.id}


@router.post("/sync-recurring", response_model=SyncRecurringOut)
def sync(s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    out = sync_recurring(s, rid)
    if out["generated_count"]:
        log_event(
            s,
            username=u.get("sub"),
            action="tx.sync_recurring",
            entity_type="transaction",
            details={"generated_ids": [t.id for t in out["generated"]], "failed_template_ids": out["failed_template_ids"]},
            restaurant_id=rid,
        )
    return out


@router.put("/{tx_id}", response_model=TxOut)
def edit_tx(tx_id: int, body: TxUpdate, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    t = update_transaction(s, rid, tx_id, body.changes())
    log_event(
        s,
        username=u.get("sub"),
        action="tx.update",
        entity_type="transaction",
        entity_id=t.id,
        details=_tx_details(t),
        restaurant_id=rid,
    )
    return t


@router.delete("/{tx_id}", status_code=204)
def delete_tx(tx_id: int, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    snapshot = delete_transaction(s, rid, tx_id)
    log_event(
        s,
        username=u.get("sub"),
        action="tx.delete",
        entity_type="transaction",
        entity_id=tx_id,
        details=snapshot,
        restaurant_id=rid,
    )
    return Response(status_code=204)
