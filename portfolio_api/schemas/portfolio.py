from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field

from portfolio_api.schemas.common import CamelModel, DecimalString, amount_field

SYMBOL_PATTERN = r"^[A-Za-z0-9.\-]{1,15}$"


class AssetRequest(CamelModel):
    asset_symbol: str = Field(..., pattern=SYMBOL_PATTERN)
    quantity: Decimal = amount_field(ge=0)
    price: Decimal = amount_field(gt=0)


class PortfolioUpdateRequest(CamelModel):
    assets: List[AssetRequest] = Field(max_length=50)


class PositionResponse(CamelModel):
    asset_symbol: str
    quantity: DecimalString
    average_cost: Optional[DecimalString] = None
    price: DecimalString
    value: DecimalString
    price_status: Literal["live", "stale", "unavailable"]


class PortfolioResponse(CamelModel):
    portfolio: List[PositionResponse]
    portfolio_value: DecimalString


class HoldingResponse(CamelModel):
    asset_symbol: str
    quantity: DecimalString
    average_cost: Optional[DecimalString] = None


class PortfolioUpdateResponse(CamelModel):
    portfolio: List[HoldingResponse]


class SymbolReconciliationResponse(CamelModel):
    asset_symbol: str
    ledger_quantity: DecimalString
    holding_quantity: DecimalString
    reconciled: bool


class ReconciliationResponse(CamelModel):
    reconciled: bool
    symbols: List[SymbolReconciliationResponse]
