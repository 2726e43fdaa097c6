"""
Key issuing endpoint
"""

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system


router = APIRouter()


@router.get("/auth")
def issue_api_key(system: BankingSystem = Depends(get_banking_system)):
    """Generate a new API key. No authentication needed."""
    return {"apiKey": system.api_keys.generate_key()}
