"""
Transaction endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from .auth import BankingSystem, get_banking_system, require_api_key
from .errors import ApiError
from .schemas import CreateTransactionRequest
from ..models import TransactionFilters
from ..transactions import TransactionFailure, TransferRequest
from ..validation import validate_date_filter


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_transaction(
    request: CreateTransactionRequest,
    api_key: str = Depends(require_api_key),
    system: BankingSystem = Depends(get_banking_system)
):
    """Transfer between accounts, or deposit with fromAccountId "0" """
    transfer = TransferRequest(
        from_account_id=request.from_account_id,
        to_account_id=request.to_account_id,
        amount=request.amount,
        currency=request.currency
    )

    # Only the owner (or admin) may spend from an account
    if not transfer.is_deposit:
        source = system.account_manager.get_account(transfer.from_account_id)
        if source is not None and not system.account_manager.can_access(source, api_key):
            raise ApiError(403, "forbiddenError",
                           "You do not have permission to transfer from this account")

    result = system.transaction_processor.process(transfer, api_key=api_key)
    if isinstance(result, TransactionFailure):
        raise ApiError.from_failure(result)

    return {"transaction": {"transactionId": result.transaction_id}}


@router.get("")
def list_transactions(
    from_account_id: Optional[str] = Query(None, alias="fromAccountId"),
    to_account_id: Optional[str] = Query(None, alias="toAccountId"),
    created_at: Optional[str] = Query(None, alias="createdAt", description="YYYY-MM-DD"),
    api_key: str = Depends(require_api_key),
    system: BankingSystem = Depends(get_banking_system)
):
    """List transactions, oldest first"""
    try:
        created_at = validate_date_filter(created_at)
    except ValueError as e:
        raise ApiError(400, "validationError", str(e))

    filters = TransactionFilters(
        from_account_id=from_account_id,
        to_account_id=to_account_id,
        created_at=created_at
    )
    transactions = system.transaction_processor.list_transactions(filters)
    return {"transactions": [transaction.to_dict() for transaction in transactions]}


@router.get("/{transaction_id}")
def get_transaction(
    transaction_id: str,
    api_key: str = Depends(require_api_key),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get transaction details"""
    transaction = system.transaction_processor.get_transaction(transaction_id)
    if transaction is None:
        raise ApiError(404, "notFoundError", "Transaction not found")
    return {"transaction": transaction.to_dict()}
