from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from portfolio_api.core.context import RequestContext
from portfolio_api.core.dependencies import get_current_user
from portfolio_api.models.transaction import Transaction
from portfolio_api.schemas.common import ErrorResponse
from portfolio_api.schemas.portfolio import SYMBOL_PATTERN
from portfolio_api.schemas.transaction import (
    TransactionCreatedResponse,
    TransactionRequest,
    TransactionResponse,
)
from portfolio_api.services import transaction_service

router = APIRouter(
    prefix="/transactions",
    tags=["Transactions"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


def _to_response(record: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=record.transaction_id,
        asset_symbol=record.symbol,
        quantity=record.quantity,
        price=record.price,
        type=record.kind,
        date=record.created_at,
    )


@router.post(
    "",
    response_model=TransactionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid transaction"},
        409: {"model": ErrorResponse, "description": "Insufficient holdings or concurrent update"},
    },
)
def create_transaction(
    request: TransactionRequest,
    current_user: RequestContext = Depends(get_current_user),
):
    record = transaction_service.create_transaction(
        current_user,
        symbol=request.asset_symbol,
        quantity=request.quantity,
        price=request.price,
    )
    return TransactionCreatedResponse(transaction=_to_response(record))


@router.get("", response_model=List[TransactionResponse])
def list_transactions(
    symbol: Optional[str] = Query(None, pattern=SYMBOL_PATTERN, description="Only this asset"),
    limit: int = Query(transaction_service.DEFAULT_HISTORY_LIMIT, ge=1, le=500),
    current_user: RequestContext = Depends(get_current_user),
):
    records = transaction_service.list_transactions(current_user, symbol=symbol, limit=limit)
    return [_to_response(r) for r in records]
