"""
Pydantic schemas for API requests

Field names are camelCase on the wire.
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class CreateAccountRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    owner: Optional[str] = None
    currency: Optional[str] = Field(None, description="COSMIC_COINS, GALAXY_GOLD or MOON_BUCKS")
    balance: Optional[Decimal] = Field(None, description="Opening balance, defaults to 0")
    account_type: Optional[str] = Field(None, alias="accountType", description="STANDARD, PREMIUM or BUSINESS")


class UpdateAccountRequest(BaseModel):
    """Only owner and account type can change"""
    model_config = ConfigDict(populate_by_name=True)

    owner: Optional[str] = None
    account_type: Optional[str] = Field(None, alias="accountType")


class CreateTransactionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_account_id: str = Field(..., alias="fromAccountId", description='Source account, or "0" for a deposit')
    to_account_id: str = Field(..., alias="toAccountId")
    amount: Decimal
    currency: str
