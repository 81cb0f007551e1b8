from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from restoledger.api.deps import db, can_view, can_manage, restaurant_id
from restoledger.schemas.bank_account import BankAccountCreate, BankAccountOut, BankAccountUpdate
from restoledger.services.accounts import (
    account_out,
    create_account,
    delete_account,
    list_accounts,
    update_account,
)
from restoledger.services.audit import log_event

router = APIRouter(prefix="/financial/bank-accounts", tags=["bank-accounts"])


@router.get("", response_model=list[BankAccountOut])
def list_bank_accounts(s: Session = Depends(db), u=Depends(can_view), rid: int = Depends(restaurant_id)):
    return list_accounts(s, rid)


@router.post("", response_model=BankAccountOut, status_code=201)
def create_bank_account(body: BankAccountCreate, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    acc = create_account(s, rid, body.name, body.type, body.balance)
    log_event(
        s,
        username=u.get("sub"),
        action="bank_account.create",
        entity_type="bank_account",
        entity_id=acc.id,
        details={"name": acc.name, "type": acc.type, "opening_balance": str(acc.balance)},
        restaurant_id=rid,
    )
    return account_out(acc)


@router.put("/{account_id}", response_model=BankAccountOut)
def update_bank_account(account_id: int, body: BankAccountUpdate, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    acc = update_account(s, rid, account_id, name=body.name, account_type=body.type)
    log_event(
        s,
        username=u.get("sub"),
        action="bank_account.update",
        entity_type="bank_account",
        entity_id=acc.id,
        details={"name": acc.name, "type": acc.type},
        restaurant_id=rid,
    )
    return account_out(acc)


@router.delete("/{account_id}", status_code=204)
def delete_bank_account(account_id: int, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    acc = delete_account(s, rid, account_id)
    log_event(
        s,
        username=u.get("sub"),
        action="bank_account.delete",
        entity_type="bank_account",
        entity_id=account_id,
        details={"name": acc.name},
        restaurant_id=rid,
    )
    return Response(status_code=204)
