import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, localcontext
from typing import Callable, Dict, List, Optional

from pynamodb.exceptions import DoesNotExist, TransactWriteError
from pynamodb.transactions import TransactWrite

from portfolio_api.core.context import RequestContext
from portfolio_api.core.database import get_connection
from portfolio_api.core.exceptions import ConcurrentUpdate, InsufficientHoldings, ValidationError
from portfolio_api.core.logging_config import get_logger
from portfolio_api.models.holding import Holding
from portfolio_api.models.transaction import (
    KIND_BUY,
    KIND_SELL,
    Transaction,
)

logger = get_logger(__name__)

MAX_WRITE_ATTEMPTS = 3
DEFAULT_HISTORY_LIMIT = 200
COST_PRECISION = Decimal("0.00000001")
ZERO = Decimal("0")

# Kept well inside DynamoDB's 38 significant digits
MAX_WHOLE_DIGITS = 12
MAX_DECIMAL_PLACES = 8

_CONFLICT_CODES = {"ConditionalCheckFailed", "TransactionConflict"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


def check_amount(label: str, value: Decimal) -> None:
    """Reject amounts the ledger cannot store or do cost arithmetic on exactly."""
    if not value.is_finite():
        raise ValidationError(f"{label} must be a finite number")
    _, digits, exponent = value.normalize().as_tuple()
    decimal_places = max(0, -exponent)
    whole_digits = max(0, len(digits) + exponent)
    if whole_digits > MAX_WHOLE_DIGITS or decimal_places > MAX_DECIMAL_PLACES:
        raise ValidationError(
            f"{label} allows at most {MAX_WHOLE_DIGITS} whole digits and {MAX_DECIMAL_PLACES} decimal places"
        )


def load_holding(user_id: str, symbol: str) -> Optional[Holding]:
    try:
        return Holding.get(user_id, symbol, consistent_read=True)
    except DoesNotExist:
        return None


def load_holdings(user_id: str) -> Dict[str, Holding]:
    return {h.symbol: h for h in Holding.query(user_id, consistent_read=True)}


def _weighted_cost(
    held: Decimal, current_cost: Optional[Decimal], bought: Decimal, price: Decimal
) -> Optional[Decimal]:
    if held == ZERO:
        return price
    if current_cost is None:
        return None
    try:
        with localcontext() as context:
            context.prec = 38
            total = held * current_cost + bought * price
            return (total / (held + bought)).quantize(COST_PRECISION)
    except InvalidOperation:
        raise ValidationError("Average cost is out of range")


class LedgerBatch:
    """
    Holding changes plus their ledger entries, committed in one DynamoDB
    transaction. Holding writes are conditioned on the holding's version, so
    a concurrent writer makes the whole batch fail instead of interleaving.
    """

    def __init__(self, user_id: str, created_at: Optional[datetime] = None):
        self.user_id = user_id
        self.created_at = created_at or _now()
        self.records: List[Transaction] = []
        self._saves: List[Holding] = []
        self._deletes: List[Holding] = []

    def apply(
        self,
        holding: Optional[Holding],
        symbol: str,
        delta: Decimal,
        price: Decimal,
        kind: str,
        average_cost: Optional[Decimal] = None,
    ) -> Transaction:
        """
        Stage `delta` against `holding` and the matching ledger entry.

        `average_cost` overrides the cost basis; by default buys re-weight
        it and sells keep it.
        """
        held = holding.quantity if holding is not None else ZERO
        new_quantity = held + delta
        if new_quantity < ZERO:
            raise InsufficientHoldings(symbol, held, -delta)

        if average_cost is None:
            current_cost = holding.average_cost if holding is not None else None
            if delta > ZERO:
                average_cost = _weighted_cost(held, current_cost, delta, price)
            else:
                average_cost = current_cost

        if new_quantity == ZERO:
            if holding is not None:
                self._deletes.append(holding)
        else:
            if holding is None:
                holding = Holding(user_id=self.user_id, symbol=symbol)
            holding.quantity = new_quantity
            holding.average_cost = average_cost
            holding.updated_at = self.created_at
            self._saves.append(holding)

        transaction_id = uuid.uuid4().hex
        record = Transaction(
            user_id=self.user_id,
            transaction_key=Transaction.make_key(self.created_at, transaction_id),
            transaction_id=transaction_id,
            symbol=symbol,
            quantity=delta,
            price=price,
            kind=kind,
            created_at=self.created_at,
        )
        self.records.append(record)
        return record

    def holdings_after(self, before: Dict[str, Holding]) -> Dict[str, Holding]:
        """Holdings as they stand once this batch is committed on top of `before`."""
        after = dict(before)
        for holding in self._saves:
            after[holding.symbol] = holding
        for holding in self._deletes:
            after.pop(holding.symbol, None)
        return after

    def commit(self) -> None:
        if not self.records:
            return
        with TransactWrite(connection=get_connection()) as transaction:
            for holding in self._saves:
                transaction.save(holding)
            for holding in self._deletes:
                transaction.delete(holding)
            for record in self.records:
                transaction.save(record, condition=Transaction.transaction_key.does_not_exist())


def _is_write_conflict(error: TransactWriteError) -> bool:
    if error.cause_response_code != "TransactionCanceledException":
        return False
    reasons = getattr(error, "cancellation_reasons", None) or []
    codes = {r.code for r in reasons if r is not None and r.code and r.code != "None"}
    return not codes or bool(codes & _CONFLICT_CODES)


def commit_with_retry(user_id: str, build: Callable[[], LedgerBatch]) -> LedgerBatch:
    """
    Build a batch from freshly read holdings and commit it, re-reading and
    rebuilding when another writer got there first.
    """
    for attempt in range(MAX_WRITE_ATTEMPTS):
        batch = build()
        try:
            batch.commit()
            return batch
        except TransactWriteError as e:
            if not _is_write_conflict(e):
                raise
            logger.warning(
                "Holding write conflict, retrying",
                extra={'user_id': user_id, 'attempt': attempt + 1}
            )
    raise ConcurrentUpdate()


def create_transaction(
    ctx: RequestContext,
    symbol: str,
    quantity: Decimal,
    price: Decimal,
) -> Transaction:
    """Append a buy (quantity > 0) or sell (quantity < 0) and adjust the holding."""
    symbol = normalize_symbol(symbol)
    if not symbol:
        raise ValidationError("Asset symbol is required")
    check_amount("Quantity", quantity)
    check_amount("Price", price)
    if quantity == ZERO:
        raise ValidationError("Quantity must not be zero")
    if price <= ZERO:
        raise ValidationError("Price must be greater than zero")

    kind = KIND_BUY if quantity > ZERO else KIND_SELL

    def build() -> LedgerBatch:
        batch = LedgerBatch(ctx.user_id)
        batch.apply(load_holding(ctx.user_id, symbol), symbol, quantity, price, kind)
        return batch

    try:
        batch = commit_with_retry(ctx.user_id, build)
    except InsufficientHoldings as e:
        logger.info(
            "Sell rejected, insufficient holdings",
            extra={'user_id': ctx.user_id, 'symbol': symbol, 'held': str(e.held), 'requested': str(e.requested)}
        )
        raise

    record = batch.records[0]
    logger.info(
        "Transaction recorded",
        extra={'user_id': ctx.user_id, 'symbol': symbol, 'kind': kind, 'quantity': str(quantity)}
    )
    return record


def list_transactions(
    ctx: RequestContext,
    symbol: Optional[str] = None,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[Transaction]:
    """The caller's transactions, newest first."""
    filter_condition = None
    if symbol:
        filter_condition = Transaction.symbol == normalize_symbol(symbol)

    return list(
        Transaction.query(
            ctx.user_id,
            filter_condition=filter_condition,
            scan_index_forward=False,
            consistent_read=True,
            limit=limit,
        )
    )
