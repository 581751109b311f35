from datetime import datetime
from decimal import Decimal

from pydantic import Field

from portfolio_api.schemas.common import CamelModel, DecimalString, amount_field
from portfolio_api.schemas.portfolio import SYMBOL_PATTERN


class TransactionRequest(CamelModel):
    asset_symbol: str = Field(..., pattern=SYMBOL_PATTERN)
    quantity: Decimal = amount_field(description="Positive to buy, negative to sell")
    price: Decimal = amount_field(gt=0)


class TransactionResponse(CamelModel):
    id: str
    asset_symbol: str
    quantity: DecimalString
    price: DecimalString
    type: str
    date: datetime


class TransactionCreatedResponse(CamelModel):
    transaction: TransactionResponse
