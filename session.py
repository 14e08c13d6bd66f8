# session.py
import datetime
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Tuple

from catalog import AddToCart, CatalogResolver, OpenSearch, Superseded, load_clients
from models import Cart, CatalogEntry, Client, ClientContext, EmptyCart, NoClient, NoSelection, SaleError

logger = logging.getLogger("counter_sale.session")


# --- Commands ---

@dataclass(frozen=True)
class AddProduct:
    entry: CatalogEntry


@dataclass(frozen=True)
class RemoveSelected:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class SelectClient:
    client: Optional[Client]


@dataclass(frozen=True)
class SelectRow:
    index: Optional[int]


@dataclass(frozen=True)
class ChangeQuantity:
    index: int
    quantity: int


@dataclass(frozen=True)
class Validate:
    pass


# --- Results ---

@dataclass(frozen=True)
class CommandResult:
    ok: bool
    value: Any = None
    error: Optional[SaleError] = None

    @classmethod
    def success(cls, value=None):
        return cls(True, value=value)

    @classmethod
    def failed(cls, error: SaleError):
        return cls(False, error=error)

    @property
    def code(self):
        return self.error.code if self.error else "OK"

    @property
    def message(self):
        return self.error.message if self.error else ""


@dataclass(frozen=True)
class SoldLine:
    designation: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


@dataclass(frozen=True)
class CompletedSale:
    """Snapshot of a validated transaction. Not persisted."""
    lines: Tuple[SoldLine, ...]
    subtotal: Decimal
    discount_percent: Decimal
    total: Decimal
    client: Client
    timestamp: str = field(default_factory=lambda: datetime.datetime.now().isoformat(timespec="seconds"))


class TransactionValidator:
    """
    Completes a sale. Preconditions are checked in order: the cart must
    hold at least one line, then a client (Divers included) must be
    selected. On failure nothing is changed.
    """

    def validate(self, cart: Cart, client_context: ClientContext) -> CompletedSale:
        if cart.is_empty:
            raise EmptyCart()
        if not client_context.is_selected:
            raise NoClient()
        discount = client_context.discount_percent
        sale = CompletedSale(
            lines=tuple(SoldLine(li.designation, li.unit_price, li.quantity, li.line_total)
                        for li in cart.items),
            subtotal=cart.subtotal,
            discount_percent=discount,
            total=cart.total(discount),
            client=client_context.client,
        )
        cart.clear()
        return sale


class CounterSaleSession:
    """
    Owns the cart and client context of one counter-sale screen.
    All mutations go through dispatch(); the total is memoized and
    dropped on every cart or client change.
    """

    def __init__(self, resolver: CatalogResolver = None, client_provider=None,
                 validator: TransactionValidator = None, on_completed=None):
        self.resolver = resolver
        self.client_provider = client_provider
        self.validator = validator or TransactionValidator()
        self.on_completed = on_completed
        self.cart = Cart()
        self.client_context = ClientContext(on_change=self._invalidate)
        self._total = None
        self._handlers = {
            AddProduct: self._add_product,
            RemoveSelected: self._remove_selected,
            Clear: self._clear,
            SelectClient: self._select_client,
            SelectRow: self._select_row,
            ChangeQuantity: self._change_quantity,
            Validate: self._validate,
        }

    def _invalidate(self):
        self._total = None

    # Dispatch

    def dispatch(self, command) -> CommandResult:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unknown command: {command!r}")
        try:
            value = handler(command)
        except SaleError as e:
            logger.info(f"{type(command).__name__} rejected: {e.code} - {e.message}")
            return CommandResult.failed(e)
        return CommandResult.success(value)

    def _add_product(self, cmd):
        item = self.cart.add_item(cmd.entry)
        self._invalidate()
        logger.info(f"Added {item.designation} at {item.unit_price}")
        return item

    def _remove_selected(self, cmd):
        if self.cart.selected_index is None:
            raise NoSelection()
        item = self.cart.remove_at(self.cart.selected_index)
        self._invalidate()
        logger.info(f"Removed {item.designation}")
        return item

    def _clear(self, cmd):
        self.cart.clear()
        self._invalidate()
        logger.info("Transaction cleared")

    def _select_client(self, cmd):
        if cmd.client is None:
            self.client_context.clear()
        else:
            self.client_context.select(cmd.client)
        return cmd.client

    def _select_row(self, cmd):
        self.cart.select(cmd.index)
        return cmd.index

    def _change_quantity(self, cmd):
        item = self.cart.set_quantity(cmd.index, cmd.quantity)
        self._invalidate()
        return item

    def _validate(self, cmd):
        sale = self.validator.validate(self.cart, self.client_context)
        self._invalidate()
        logger.info(f"Sale validated for {sale.client.name}: {sale.total} "
                    f"({len(sale.lines)} line(s))")
        if self.on_completed:
            self.on_completed(sale)
        return sale

    # Screen operations

    def add_by_code(self, text: str) -> CommandResult:
        """
        Commit typed or scanned input synchronously. The result value is the
        CommitOutcome; an AddToCart outcome has already been applied.
        """
        if self.resolver is None:
            raise RuntimeError("No catalog resolver configured.")
        return self.handle_outcome(self.resolver.commit(text))

    def handle_outcome(self, outcome) -> CommandResult:
        """Apply a commit outcome produced by the resolver (sync or async)."""
        if isinstance(outcome, AddToCart):
            result = self.dispatch(AddProduct(outcome.entry))
            if not result.ok:
                return result
            return CommandResult.success(outcome)
        if isinstance(outcome, (OpenSearch, Superseded)):
            return CommandResult.success(outcome)
        raise TypeError(f"Unknown outcome: {outcome!r}")

    def search(self, term: str = ""):
        if self.resolver is None:
            return []
        return self.resolver.search(term)

    def find_clients(self, term: str = ""):
        if self.client_provider is None:
            return []
        return load_clients(self.client_provider, term)

    def add_product(self, entry: CatalogEntry) -> CommandResult:
        return self.dispatch(AddProduct(entry))

    def remove_selected(self) -> CommandResult:
        return self.dispatch(RemoveSelected())

    def clear(self) -> CommandResult:
        return self.dispatch(Clear())

    def select_client(self, client: Optional[Client]) -> CommandResult:
        return self.dispatch(SelectClient(client))

    def select_row(self, index: Optional[int]) -> CommandResult:
        return self.dispatch(SelectRow(index))

    def change_quantity(self, index: int, quantity: int) -> CommandResult:
        return self.dispatch(ChangeQuantity(index, quantity))

    def validate(self) -> CommandResult:
        return self.dispatch(Validate())

    # Read accessors

    @property
    def items(self):
        return list(self.cart.items)

    @property
    def selected_index(self):
        return self.cart.selected_index

    @property
    def client(self):
        return self.client_context.client

    @property
    def discount_percent(self) -> Decimal:
        return self.client_context.discount_percent

    @property
    def balance(self) -> Decimal:
        return self.client_context.balance

    @property
    def loyalty_points(self) -> int:
        return self.client_context.loyalty_points

    @property
    def subtotal(self) -> Decimal:
        return self.cart.subtotal

    @property
    def total(self) -> Decimal:
        if self._total is None:
            self._total = self.cart.total(self.discount_percent)
        return self._total
