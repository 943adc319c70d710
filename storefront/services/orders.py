"""
Order Aggregator / Poller
Fans out to the three order listings, normalizes, merges, and polls until
every source has answered or the timeout elapses
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from storefront.catalog.normalizer import resolve_field, to_number
from storefront.commerce.interface import RemoteCartBackend
from storefront.config import Settings, settings as default_settings
from storefront.models import Order, OrderFetchResult, OrderLine
from storefront.utils.notices import NoticeBoard

logger = logging.getLogger(__name__)

ORDER_FIELD_ALIASES: Dict[str, tuple] = {
    "id": ("id", "orderId", "order_id", "_id"),
    "total": ("total", "totalAmount", "total_amount", "totalPrice", "total_price", "amount"),
    "status": ("status", "state", "orderStatus", "order_status"),
    "created_at": ("createdAt", "created_at", "orderDate", "order_date", "date", "updatedAt"),
    "lines": ("items", "orderItems", "orderItem", "order_items", "products"),
    "customer": ("customerName", "customer_name", "username", "userName", "name"),
}

LINE_FIELD_ALIASES: Dict[str, tuple] = {
    "quantity": ("quantity", "qty"),
    "product_id": ("productId", "product_id", "itemId"),
    "nested_product_id": ("productId", "id"),
    "price": ("price", "unitPrice", "unit_price"),
}

ORDER_ENVELOPE_KEYS = ("data", "orders", "items", "results", "rows")
NESTED_ORDER_ENVELOPE_KEYS = ("orders", "items", "rows")

def extract_orders(payload: Any) -> List[Dict]:
    """Find the order list in a listing payload; anything unrecognized yields none"""
    if isinstance(payload, list):
        return [order for order in payload if isinstance(order, dict)]
    if not isinstance(payload, dict):
        return []
    for key in ORDER_ENVELOPE_KEYS:
        if isinstance(payload.get(key), list):
            return [order for order in payload[key] if isinstance(order, dict)]
    data = payload.get("data")
    if isinstance(data, dict):
        for key in NESTED_ORDER_ENVELOPE_KEYS:
            if isinstance(data.get(key), list):
                return [order for order in data[key] if isinstance(order, dict)]
    return []

def parse_created_at(value: Any) -> Optional[datetime]:
    """ISO-8601 / RFC 2822 strings or epoch seconds/milliseconds; None if unparseable"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        numeric = to_number(value)
        if numeric is not None:
            seconds = numeric / 1000 if abs(numeric) > 1e11 else numeric
            try:
                return datetime.fromtimestamp(seconds, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                return None
        if not isinstance(value, str) or not value.strip():
            return None
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                parsed = parsedate_to_datetime(value.strip())
            except (TypeError, ValueError, IndexError):
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

def normalize_order_line(record: Dict) -> OrderLine:
    product = resolve_field(record, ["product"])
    product = product if isinstance(product, dict) else {}

    quantity = to_number(resolve_field(record, LINE_FIELD_ALIASES["quantity"]))
    product_id = resolve_field(record, LINE_FIELD_ALIASES["product_id"])
    if product_id is None:
        product_id = resolve_field(product, LINE_FIELD_ALIASES["nested_product_id"])
    price = to_number(resolve_field(record, LINE_FIELD_ALIASES["price"]))
    if price is None:
        price = to_number(resolve_field(product, ["price"]))

    numeric_id = to_number(product_id)
    return OrderLine(
        product_id=numeric_id if numeric_id is not None else product_id,
        quantity=int(quantity) if quantity and quantity > 0 else 1,
        price=float(price) if price is not None else 0.0,
    )

def normalize_order(record: Dict, source: str, index: int = 0) -> Order:
    """Canonical order from an arbitrary upstream shape"""
    order_id = resolve_field(record, ORDER_FIELD_ALIASES["id"])

    total = to_number(resolve_field(record, ORDER_FIELD_ALIASES["total"]))
    if total is None:
        payment = resolve_field(record, ["payment"])
        if isinstance(payment, dict):
            total = to_number(resolve_field(payment, ["paymentAmount", "amount"]))

    status = resolve_field(record, ORDER_FIELD_ALIASES["status"])
    raw_lines = resolve_field(record, ORDER_FIELD_ALIASES["lines"])
    lines = [
        normalize_order_line(line)
        for line in (raw_lines if isinstance(raw_lines, list) else [])
        if isinstance(line, dict)
    ]
    if lines:
        item_count = sum(line.quantity for line in lines)
    else:
        counted = to_number(resolve_field(record, ["itemCount", "itemsCount", "totalItems"]))
        item_count = int(counted) if counted else 0

    customer = resolve_field(record, ORDER_FIELD_ALIASES["customer"])
    return Order(
        source_id=source,
        id=str(order_id) if order_id is not None else f"{source}-{index}",
        total=float(total) if total is not None else 0.0,
        status=str(status) if status is not None else "unknown",
        created_at=parse_created_at(resolve_field(record, ORDER_FIELD_ALIASES["created_at"])),
        item_count=item_count,
        customer_name=str(customer) if isinstance(customer, (str, int)) else None,
        lines=lines,
        raw=record,
    )

def sort_orders(orders: Iterable[Order]) -> List[Order]:
    """Newest first; orders without a usable date go last"""
    return sorted(
        orders,
        key=lambda order: (
            order.created_at is not None,
            order.created_at.timestamp() if order.created_at else 0.0,
        ),
        reverse=True,
    )

class OrderAggregator:
    """Merges the order listings of every remote backend"""

    def __init__(self, backends: Sequence[RemoteCartBackend]):
        unique = []
        for backend in backends:
            if backend not in unique:
                unique.append(backend)
        self.backends = unique

    async def _fetch_source(self, backend: RemoteCartBackend) -> Tuple[bool, List[Order]]:
        try:
            payload = await backend.list_orders()
        except Exception as e:
            logger.warning("Order listing from %s failed: %s", backend.name, e)
            return False, []
        records = extract_orders(payload)
        return True, [normalize_order(record, backend.order_source, index) for index, record in enumerate(records)]

    async def fetch_orders_once(self) -> OrderFetchResult:
        results = await asyncio.gather(*(self._fetch_source(backend) for backend in self.backends))
        orders: List[Order] = []
        failed: List[str] = []
        for backend, (ok, source_orders) in zip(self.backends, results):
            if not ok:
                failed.append(backend.name)
            orders.extend(source_orders)
        return OrderFetchResult(
            orders=sort_orders(orders),
            all_sources_ok=not failed,
            failed_sources=failed,
        )

class PollState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    COMPLETE = "complete"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

class OrderPoller:
    """
    Re-fetches merged orders on a fixed interval until all sources answer

    idle -> polling -> complete | timed_out | cancelled. Every terminal state
    keeps the last fetched order list.
    """

    def __init__(
        self,
        aggregator: OrderAggregator,
        notices: Optional[NoticeBoard] = None,
        config: Optional[Settings] = None,
        on_update: Optional[Callable[[List[Order]], None]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        config = config or default_settings
        self.aggregator = aggregator
        self.notices = notices if notices is not None else NoticeBoard()
        self.interval = config.ORDER_POLL_INTERVAL_SECONDS
        self.timeout = config.ORDER_POLL_TIMEOUT_SECONDS
        self.on_update = on_update
        self._sleep = sleep
        self._clock = clock
        self._cancelled = False

        self.state = PollState.IDLE
        self.orders: List[Order] = []
        self.all_sources_ok = False
        self.last_result: Optional[OrderFetchResult] = None
        self.ticks = 0

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def reset(self) -> None:
        """Clear a previous cancel and forget the last poll, ready for a fresh run"""
        self._cancelled = False
        self.state = PollState.IDLE
        self.ticks = 0

    def _publish(self, result: OrderFetchResult) -> None:
        self.last_result = result
        self.orders = result.orders
        self.all_sources_ok = result.all_sources_ok
        if self.on_update is not None:
            self.on_update(self.orders)

    async def poll_until_complete(self) -> PollState:
        """Poll until complete, timed out or cancelled; a cancel issued before the call wins"""
        self.state = PollState.POLLING
        self.ticks = 0
        started = self._clock()

        while True:
            if self._cancelled:
                self.state = PollState.CANCELLED
                break

            result = await self.aggregator.fetch_orders_once()
            self.ticks += 1
            self._publish(result)

            if result.all_sources_ok:
                self.state = PollState.COMPLETE
                break
            if self._clock() - started >= self.timeout:
                self.state = PollState.TIMED_OUT
                self.notices.warning(
                    f"Could not reach all order sources within {self.timeout:g}s; "
                    f"showing {len(self.orders)} orders from the sources that answered",
                    source=", ".join(result.failed_sources) or None,
                )
                break
            if self._cancelled:
                self.state = PollState.CANCELLED
                break
            await self._sleep(self.interval)

        logger.info("Order polling finished: %s after %s ticks", self.state.value, self.ticks)
        return self.state
