"""Sales metrics over decoded report rows.

Two variants share most rules:

* ``summarize`` is the status dashboard: it guesses which column carries
  marketplace order ids and reports status, revenue and daily trends.
* ``summarize_sales`` is the sales-report view: the order id always comes
  from "Suborder No", and rows whose Order Status is exactly CANCELLED,
  CANCELED or RETURNED are dropped before they count as orders. A
  per-product breakdown is added.

Rules common to both: the status breakdown counts every row; rows without
an order id are otherwise ignored; orders are counted by distinct id.
On the dashboard any status mentioning CANCEL adds no revenue but still
counts as an order.
"""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from itertools import chain, islice

from reportdesk.analysis.models import DailySales, MetricsSummary, ProductSales, StatusCount

ORDER_ID_FALLBACK_COLUMN = "Suborder No"
MARKETPLACE_ORDER_PREFIXES: tuple[str, ...] = ("ppy",)
ORDER_ID_SAMPLE_ROWS = 10

ORDER_STATUS_COLUMN = "Order Status"
SHIPPING_STATUS_COLUMN = "Shipping Status"
PRICE_COLUMN = "Selling Price"
QUANTITY_COLUMN = "Item Quantity"
PRODUCT_COLUMN = "Product Name"
ORDER_DATE_COLUMN = "Order Date"

CANCELLED = "Cancelled"
UNKNOWN = "Unknown"
UNKNOWN_PRODUCT = "Unknown Product"
SALES_EXCLUDED_ORDER_STATUSES = frozenset({"CANCELLED", "CANCELED", "RETURNED"})

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%d-%m-%Y",
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y %H:%M",
    "%d/%m/%Y",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d-%b-%Y",
    "%d %b %Y",
    "%b %d, %Y",
)

Row = Mapping[str, str | None]


def _field(row: Row, column: str) -> str:
    return (row.get(column) or "").strip()


def detect_order_id_column(
    rows: Sequence[Row],
    prefixes: Sequence[str] = MARKETPLACE_ORDER_PREFIXES,
    fallback: str = ORDER_ID_FALLBACK_COLUMN,
) -> str:
    """Pick the column whose values look like marketplace order ids.

    Columns are tried in header order; the first one where any of the first
    ten rows contains a known prefix (case-insensitive) wins. This is a
    heuristic: when several columns match, only header order decides.
    """
    sample = list(islice(rows, ORDER_ID_SAMPLE_ROWS))
    columns: list[str] = []
    for row in sample:
        for column in row:
            if column not in columns:
                columns.append(column)

    lowered = [prefix.lower() for prefix in prefixes]
    for column in columns:
        for row in sample:
            value = (row.get(column) or "").lower()
            if any(prefix in value for prefix in lowered):
                return column
    return fallback


def classify_status(row: Row) -> str:
    """Cancelled if Order Status mentions CANCEL, else the title-cased shipping status."""
    if "CANCEL" in _field(row, ORDER_STATUS_COLUMN).upper():
        return CANCELLED
    shipping = _field(row, SHIPPING_STATUS_COLUMN)
    if not shipping:
        return UNKNOWN
    return shipping[0].upper() + shipping[1:].lower()


def parse_price(raw: str | None) -> Decimal | None:
    """Decimal value of a price string with thousands separators; None if not a finite number."""
    if not raw:
        return None
    try:
        value = Decimal(raw.replace(",", "").strip())
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def parse_quantity(raw: str | None) -> int:
    price_like = parse_price(raw)
    if price_like is None:
        return 0
    return int(price_like)


def parse_order_date(raw: str | None) -> date | None:
    """Calendar date of an order timestamp, or None when it cannot be read."""
    text = (raw or "").strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        pass
    else:
        # Timestamps with an offset are bucketed by their UTC date.
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.date()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


@dataclass
class _DayBucket:
    revenue: Decimal = Decimal("0")
    orders: set[str] = field(default_factory=set)


@dataclass
class _ProductBucket:
    quantity: int = 0
    revenue: Decimal = Decimal("0")


class MetricsAggregator:
    """Pure aggregation of row mappings into a MetricsSummary."""

    def __init__(
        self,
        order_prefixes: Sequence[str] = MARKETPLACE_ORDER_PREFIXES,
        fallback_order_column: str = ORDER_ID_FALLBACK_COLUMN,
    ) -> None:
        self._order_prefixes = tuple(order_prefixes)
        self._fallback_order_column = fallback_order_column

    def summarize(self, rows: Iterable[Row]) -> MetricsSummary:
        """Status dashboard metrics, with the order id column detected from the data."""
        iterator = iter(rows)
        head = list(islice(iterator, ORDER_ID_SAMPLE_ROWS))
        order_column = detect_order_id_column(
            head, self._order_prefixes, self._fallback_order_column
        )
        return self._aggregate(chain(head, iterator), order_column, sales_view=False)

    def summarize_sales(self, rows: Iterable[Row]) -> MetricsSummary:
        """Sales report metrics including the per-product breakdown."""
        return self._aggregate(iter(rows), self._fallback_order_column, sales_view=True)

    def _aggregate(
        self, rows: Iterator[Row], order_column: str, *, sales_view: bool
    ) -> MetricsSummary:
        total = Decimal("0")
        orders: set[str] = set()
        status_counts: dict[str, int] = {}
        days: dict[date, _DayBucket] = {}
        products: dict[str, _ProductBucket] = {}

        for row in rows:
            status = classify_status(row)
            status_counts[status] = status_counts.get(status, 0) + 1

            order_id = _field(row, order_column)
            if not order_id:
                continue
            if sales_view:
                # Excluded rows do not count as orders either.
                if _field(row, ORDER_STATUS_COLUMN).upper() in SALES_EXCLUDED_ORDER_STATUSES:
                    continue
                orders.add(order_id)
            else:
                orders.add(order_id)
                if status == CANCELLED:
                    continue

            price = parse_price(row.get(PRICE_COLUMN))
            if sales_view:
                bucket = products.setdefault(
                    _field(row, PRODUCT_COLUMN) or UNKNOWN_PRODUCT, _ProductBucket()
                )
                bucket.quantity += parse_quantity(row.get(QUANTITY_COLUMN))
                if price is not None:
                    bucket.revenue += price
            if price is None:
                continue

            total += price
            day = parse_order_date(row.get(ORDER_DATE_COLUMN))
            if day is not None:
                day_bucket = days.setdefault(day, _DayBucket())
                day_bucket.revenue += price
                day_bucket.orders.add(order_id)

        unique_orders = len(orders)
        average = (
            (total / unique_orders).quantize(Decimal("0.01")) if unique_orders else Decimal("0")
        )
        breakdown = tuple(
            StatusCount(label, count)
            for label, count in sorted(status_counts.items(), key=lambda item: -item[1])
        )
        return MetricsSummary(
            total_revenue=total,
            unique_order_count=unique_orders,
            average_order_value=average,
            status_breakdown=breakdown,
            daily_sales=tuple(
                DailySales(day, bucket.revenue, len(bucket.orders))
                for day, bucket in sorted(days.items())
            ),
            product_breakdown=tuple(
                ProductSales(name, bucket.quantity, bucket.revenue)
                for name, bucket in sorted(products.items(), key=lambda item: -item[1].revenue)
            ),
            cancelled_rows=status_counts.get(CANCELLED, 0),
            delivered_rows=sum(
                count for label, count in status_counts.items() if "Delivered" in label
            ),
            picked_up_rows=sum(
                count
                for label, count in status_counts.items()
                if "Picked" in label or "Pickup" in label
            ),
        )
