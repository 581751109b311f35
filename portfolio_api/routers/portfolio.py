from fastapi import APIRouter, Depends

from portfolio_api.core.context import RequestContext
from portfolio_api.core.dependencies import get_current_user, get_portfolio_service
from portfolio_api.schemas.common import ErrorResponse
from portfolio_api.schemas.portfolio import (
    HoldingResponse,
    PortfolioResponse,
    PortfolioUpdateRequest,
    PortfolioUpdateResponse,
    PositionResponse,
    ReconciliationResponse,
    SymbolReconciliationResponse,
)
from portfolio_api.services.portfolio_service import AssetInput, PortfolioService

router = APIRouter(
    prefix="/portfolio",
    tags=["Portfolio"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


@router.get("", response_model=PortfolioResponse)
def get_portfolio(
    current_user: RequestContext = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    valuation = service.get_portfolio(current_user)
    return PortfolioResponse(
        portfolio=[
            PositionResponse(
                asset_symbol=p.symbol,
                quantity=p.quantity,
                average_cost=p.average_cost,
                price=p.price,
                value=p.value,
                price_status=p.price_status,
            )
            for p in valuation.positions
        ],
        portfolio_value=valuation.total_value,
    )


@router.put(
    "",
    response_model=PortfolioUpdateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid assets"},
        409: {"model": ErrorResponse, "description": "Concurrent update"},
    },
)
def update_portfolio(
    request: PortfolioUpdateRequest,
    current_user: RequestContext = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    holdings = service.update_portfolio(
        current_user,
        [
            AssetInput(symbol=a.asset_symbol, quantity=a.quantity, price=a.price)
            for a in request.assets
        ],
    )
    return PortfolioUpdateResponse(
        portfolio=[
            HoldingResponse(
                asset_symbol=h.symbol,
                quantity=h.quantity,
                average_cost=h.average_cost,
            )
            for h in holdings
        ]
    )


@router.get("/reconciliation", response_model=ReconciliationResponse)
def get_reconciliation(
    current_user: RequestContext = Depends(get_current_user),
    service: PortfolioService = Depends(get_portfolio_service),
):
    report = service.reconcile(current_user)
    return ReconciliationResponse(
        reconciled=report.reconciled,
        symbols=[
            SymbolReconciliationResponse(
                asset_symbol=s.symbol,
                ledger_quantity=s.ledger_quantity,
                holding_quantity=s.holding_quantity,
                reconciled=s.reconciled,
            )
            for s in report.symbols
        ],
    )
