from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from portfolio_api.core.context import RequestContext
from portfolio_api.core.exceptions import PriceUnavailable, ValidationError
from portfolio_api.core.logging_config import get_logger
from portfolio_api.models.holding import Holding
from portfolio_api.models.transaction import KIND_ADJUSTMENT, Transaction
from portfolio_api.services.prices.price_client import AssetPriceClient
from portfolio_api.services.transaction_service import (
    ZERO,
    LedgerBatch,
    check_amount,
    commit_with_retry,
    load_holdings,
    normalize_symbol,
)

logger = get_logger(__name__)

MAX_ASSETS_PER_UPDATE = 50  # Two items per asset, DynamoDB caps a transaction at 100

PRICE_LIVE = "live"
PRICE_STALE = "stale"
PRICE_UNAVAILABLE = "unavailable"


@dataclass
class AssetInput:
    symbol: str
    quantity: Decimal
    price: Decimal


@dataclass
class Position:
    symbol: str
    quantity: Decimal
    average_cost: Optional[Decimal]
    price: Decimal
    price_status: str

    @property
    def value(self) -> Decimal:
        return self.quantity * self.price


@dataclass
class PortfolioValuation:
    positions: List[Position]
    total_value: Decimal


@dataclass
class SymbolReconciliation:
    symbol: str
    ledger_quantity: Decimal
    holding_quantity: Decimal

    @property
    def reconciled(self) -> bool:
        return self.ledger_quantity == self.holding_quantity


@dataclass
class ReconciliationReport:
    symbols: List[SymbolReconciliation] = field(default_factory=list)

    @property
    def reconciled(self) -> bool:
        return all(s.reconciled for s in self.symbols)


def calculate_portfolio_value(positions: Iterable[Position]) -> Decimal:
    """Sum up current portfolio value"""
    return sum((p.value for p in positions), ZERO)


class PortfolioService:
    def __init__(self, price_client: AssetPriceClient):
        self._price_client = price_client

    def get_portfolio(self, ctx: RequestContext) -> PortfolioValuation:
        """
        Value every holding at its current price.

        A symbol whose live price cannot be fetched is valued at its
        last-known price, or at zero when there is none.
        """
        holdings = sorted(load_holdings(ctx.user_id).values(), key=lambda h: h.symbol)

        positions = []
        for holding in holdings:
            price, status = self._price_for(holding.symbol)
            positions.append(
                Position(
                    symbol=holding.symbol,
                    quantity=holding.quantity,
                    average_cost=holding.average_cost,
                    price=price,
                    price_status=status,
                )
            )

        return PortfolioValuation(
            positions=positions,
            total_value=calculate_portfolio_value(positions),
        )

    def _price_for(self, symbol: str) -> tuple[Decimal, str]:
        try:
            quote = self._price_client.get_quote(symbol)
        except PriceUnavailable:
            logger.warning("No price for holding, valuing at zero", extra={'symbol': symbol})
            return ZERO, PRICE_UNAVAILABLE
        return quote.price, PRICE_STALE if quote.stale else PRICE_LIVE

    def update_portfolio(self, ctx: RequestContext, assets: Sequence[AssetInput]) -> List[Holding]:
        """
        Replace the caller's holdings with `assets`.

        Every quantity change is written to the ledger as an adjustment at the
        given price, and holdings missing from `assets` are closed out, so the
        ledger keeps summing to the holdings.
        """
        targets = self._validate_assets(assets)
        read: Dict[str, Holding] = {}

        def build() -> LedgerBatch:
            current = load_holdings(ctx.user_id)
            read.clear()
            read.update(current)
            batch = LedgerBatch(ctx.user_id)

            for symbol, asset in targets.items():
                holding = current.get(symbol)
                held = holding.quantity if holding is not None else ZERO
                delta = asset.quantity - held
                if delta == ZERO and (holding is None or holding.average_cost == asset.price):
                    continue
                batch.apply(holding, symbol, delta, asset.price, KIND_ADJUSTMENT, average_cost=asset.price)

            for symbol, holding in current.items():
                if symbol in targets:
                    continue
                # Closed out at cost basis; zero when the basis was never known
                price = holding.average_cost if holding.average_cost is not None else ZERO
                batch.apply(holding, symbol, -holding.quantity, price, KIND_ADJUSTMENT)

            return batch

        batch = commit_with_retry(ctx.user_id, build)
        logger.info(
            "Portfolio replaced",
            extra={'user_id': ctx.user_id, 'assets': len(targets), 'adjustments': len(batch.records)}
        )
        return sorted(batch.holdings_after(read).values(), key=lambda h: h.symbol)

    @staticmethod
    def _validate_assets(assets: Sequence[AssetInput]) -> Dict[str, AssetInput]:
        if len(assets) > MAX_ASSETS_PER_UPDATE:
            raise ValidationError(f"At most {MAX_ASSETS_PER_UPDATE} assets per update")

        targets: Dict[str, AssetInput] = {}
        for asset in assets:
            symbol = normalize_symbol(asset.symbol)
            if not symbol:
                raise ValidationError("Asset symbol is required")
            check_amount(f"Quantity for {symbol}", asset.quantity)
            check_amount(f"Price for {symbol}", asset.price)
            if asset.quantity < ZERO:
                raise ValidationError(f"Quantity for {symbol} must be zero or greater")
            if asset.price <= ZERO:
                raise ValidationError(f"Price for {symbol} must be greater than zero")
            if symbol in targets:
                raise ValidationError(f"Duplicate asset symbol {symbol}")
            targets[symbol] = AssetInput(symbol=symbol, quantity=asset.quantity, price=asset.price)
        return targets

    def reconcile(self, ctx: RequestContext) -> ReconciliationReport:
        """Compare per-symbol ledger sums with the stored holdings."""
        ledger: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        for record in Transaction.query(ctx.user_id, consistent_read=True):
            ledger[record.symbol] += record.quantity

        holdings = load_holdings(ctx.user_id)

        report = ReconciliationReport()
        for symbol in sorted(set(ledger) | set(holdings)):
            holding = holdings.get(symbol)
            report.symbols.append(
                SymbolReconciliation(
                    symbol=symbol,
                    ledger_quantity=ledger[symbol],
                    holding_quantity=holding.quantity if holding is not None else ZERO,
                )
            )

        if not report.reconciled:
            logger.error(
                "Ledger and holdings disagree",
                extra={'user_id': ctx.user_id, 'symbols': [s.symbol for s in report.symbols if not s.reconciled]}
            )
        return report
