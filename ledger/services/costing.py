"""Moving weighted-average costing over a replayed event stream.

Every event up to the end of a report is replayed in time order so that each
product carries one running average cost. A sale is costed at the average in
effect at the instant it happens; only sales inside the requested window and
account scope are added to the report, but all of them move stock.

When a product's on-hand quantity reaches zero the last average is kept, so a
sale recorded while the product shows no stock is still costed at the price
it was last bought for. Overselling drives the quantity negative instead of
failing; the result then carries ``negative_stock_occurred``.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime

from ledger.services.events import CostingEvent, PurchaseEvent, SaleEvent, safe_number


def _event_order(event: CostingEvent) -> tuple[datetime, int]:
    # Stock arriving at an instant can be sold at that same instant.
    return event.timestamp, 0 if isinstance(event, PurchaseEvent) else 1


@dataclass
class InventoryState:
    on_hand_quantity: float = 0.0
    on_hand_cost: float = 0.0
    last_average_cost: float = 0.0

    def apply_purchase(self, event: PurchaseEvent) -> None:
        self.on_hand_quantity += safe_number(event.quantity)
        self.on_hand_cost += safe_number(event.total_cost)
        if self.on_hand_quantity != 0:
            self.last_average_cost = safe_number(self.on_hand_cost / self.on_hand_quantity)

    def apply_sale(self, event: SaleEvent) -> float:
        """Remove sold stock and return the unit cost it left at."""
        quantity = safe_number(event.quantity)
        if self.on_hand_quantity != 0:
            average_cost = safe_number(self.on_hand_cost / self.on_hand_quantity)
        else:
            average_cost = safe_number(self.last_average_cost)

        self.on_hand_quantity -= quantity
        self.on_hand_cost -= safe_number(quantity * average_cost)
        self.last_average_cost = average_cost

        if self.on_hand_quantity == 0:
            self.on_hand_cost = 0.0
        elif self.on_hand_quantity < 0:
            self.on_hand_cost = safe_number(self.on_hand_quantity * average_cost)
        return average_cost

    @property
    def average_cost(self) -> float:
        if self.on_hand_quantity != 0:
            return safe_number(self.on_hand_cost / self.on_hand_quantity)
        return self.last_average_cost


@dataclass
class ProductAccumulator:
    product_id: int
    product_name: str
    quantity_sold: float = 0.0
    revenue: float = 0.0
    cost: float = 0.0


@dataclass
class StockTally:
    product_name: str
    state: InventoryState
    purchased: float = 0.0
    sold: float = 0.0


@dataclass(frozen=True)
class ProductBreakdown:
    product_id: int
    product_name: str
    quantity_sold: float
    revenue: float
    cost: float
    profit: float


@dataclass(frozen=True)
class CostingResult:
    revenue: float
    cost: float
    profit: float
    product_breakdown: tuple[ProductBreakdown, ...]
    negative_stock_occurred: bool


@dataclass(frozen=True)
class InventoryPosition:
    product_id: int
    product_name: str
    total_purchased: float
    total_sold: float
    on_hand_quantity: float
    on_hand_cost: float
    average_cost: float


def _walk(events: Iterable[CostingEvent]) -> Iterator[tuple[CostingEvent, InventoryState, float | None]]:
    """Replay events in order, yielding each with its product's updated state.

    Sales also yield the unit cost they were taken out at; purchases yield
    ``None`` in that slot.
    """
    inventory: dict[int, InventoryState] = {}
    for event in sorted(events, key=_event_order):
        state = inventory.get(event.product_id)
        if state is None:
            state = inventory[event.product_id] = InventoryState()
        if isinstance(event, PurchaseEvent):
            state.apply_purchase(event)
            yield event, state, None
        else:
            yield event, state, state.apply_sale(event)


def replay(
    events: Iterable[CostingEvent],
    *,
    start: datetime,
    end: datetime,
    account_id: int | None = None,
) -> CostingResult:
    """Cost the sales inside ``[start, end]`` for one account, or all when ``account_id`` is None."""
    accumulators: dict[int, ProductAccumulator] = {}
    negative_stock_occurred = False

    for event, state, average_cost in _walk(events):
        if average_cost is None:
            continue
        if state.on_hand_quantity < 0:
            negative_stock_occurred = True

        if not start <= event.timestamp <= end:
            continue
        if account_id is not None and event.account_id != account_id:
            continue

        accumulator = accumulators.get(event.product_id)
        if accumulator is None:
            accumulator = accumulators[event.product_id] = ProductAccumulator(
                product_id=event.product_id,
                product_name=event.product_name,
            )
        quantity = safe_number(event.quantity)
        accumulator.quantity_sold += quantity
        accumulator.revenue += safe_number(event.revenue)
        accumulator.cost += safe_number(quantity * average_cost)

    breakdown = tuple(
        ProductBreakdown(
            product_id=item.product_id,
            product_name=item.product_name,
            quantity_sold=item.quantity_sold,
            revenue=item.revenue,
            cost=item.cost,
            profit=safe_number(item.revenue - item.cost),
        )
        for item in accumulators.values()
    )
    return CostingResult(
        revenue=sum((item.revenue for item in breakdown), 0.0),
        cost=sum((item.cost for item in breakdown), 0.0),
        profit=sum((item.profit for item in breakdown), 0.0),
        product_breakdown=breakdown,
        negative_stock_occurred=negative_stock_occurred,
    )


def inventory_positions(events: Iterable[CostingEvent]) -> list[InventoryPosition]:
    """Stock left per product once every event has been replayed."""
    tallies: dict[int, StockTally] = {}
    for event, state, _ in _walk(events):
        tally = tallies.get(event.product_id)
        if tally is None:
            tally = tallies[event.product_id] = StockTally(product_name=event.product_name, state=state)
        if isinstance(event, PurchaseEvent):
            tally.purchased += safe_number(event.quantity)
        else:
            tally.sold += safe_number(event.quantity)

    return [
        InventoryPosition(
            product_id=product_id,
            product_name=tally.product_name,
            total_purchased=tally.purchased,
            total_sold=tally.sold,
            on_hand_quantity=tally.state.on_hand_quantity,
            on_hand_cost=tally.state.on_hand_cost,
            average_cost=tally.state.average_cost,
        )
        for product_id, tally in tallies.items()
    ]
