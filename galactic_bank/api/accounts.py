"""
Account management endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from .auth import BankingSystem, get_banking_system, require_api_key
from .schemas import CreateAccountRequest, UpdateAccountRequest


router = APIRouter()


@router.get("")
def list_accounts(
    owner: Optional[str] = Query(None, description="Case-insensitive substring of the owner name"),
    created_at: Optional[str] = Query(None, alias="createdAt", description="YYYY-MM-DD"),
    api_key: str = Depends(require_api_key),
    system: BankingSystem = Depends(get_banking_system)
):
    """List the caller's accounts"""
    accounts = system.account_manager.list_accounts(api_key, owner=owner, created_at=created_at)
    return {"accounts": [account.to_dict() for account in accounts]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_account(
    request: CreateAccountRequest,
    api_key: str = Depends(require_api_key),
    system: BankingSystem = Depends(get_banking_system)
):
    """Open an account owned by the calling key"""
    account = system.account_manager.create_account(
        owner=request.owner,
        currency=request.currency,
        owner_key=api_key,
        balance=request.balance,
        account_type=request.account_type
    )
    return {"account": {"accountId": account.account_id}}


@router.get("/{account_id}")
def get_account(
    account_id: str,
    api_key: str = Depends(require_api_key),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get account details"""
    account = system.account_manager.get_owned_account(account_id, api_key)
    return {"account": account.to_dict()}


@router.put("/{account_id}")
def update_account(
    account_id: str,
    request: UpdateAccountRequest,
    api_key: str = Depends(require_api_key),
    system: BankingSystem = Depends(get_banking_system)
):
    """Rename an account or change its type"""
    account = system.account_manager.update_account(
        account_id, api_key, owner=request.owner, account_type=request.account_type
    )
    return {"account": account.to_dict()}


@router.delete("/{account_id}")
def delete_account(
    account_id: str,
    api_key: str = Depends(require_api_key),
    system: BankingSystem = Depends(get_banking_system)
):
    """Soft-delete an account; its transaction history stays readable"""
    system.account_manager.delete_account(account_id, api_key)
    return {"message": "Account deleted successfully"}
