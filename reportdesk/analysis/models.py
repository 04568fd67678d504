from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any


def _money(value: Decimal) -> str:
    return format(value, "f")


@dataclass(frozen=True)
class StatusCount:
    label: str
    count: int


@dataclass(frozen=True)
class DailySales:
    day: date
    revenue: Decimal
    order_count: int


@dataclass(frozen=True)
class ProductSales:
    name: str
    quantity: int
    revenue: Decimal


@dataclass(frozen=True)
class MetricsSummary:
    """Result of one aggregation pass over a report's rows."""

    total_revenue: Decimal
    unique_order_count: int
    average_order_value: Decimal
    status_breakdown: tuple[StatusCount, ...]
    daily_sales: tuple[DailySales, ...]
    product_breakdown: tuple[ProductSales, ...] = ()
    cancelled_rows: int = 0
    delivered_rows: int = 0
    picked_up_rows: int = 0

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form, as cached on a job record's analysis field."""
        return {
            "totalSales": _money(self.total_revenue),
            "totalOrders": self.unique_order_count,
            "averageOrderValue": _money(self.average_order_value),
            "cancelledOrdersCount": self.cancelled_rows,
            "deliveredOrdersCount": self.delivered_rows,
            "pickedUpOrdersCount": self.picked_up_rows,
            "statusBreakdown": [
                {"name": s.label, "value": s.count} for s in self.status_breakdown
            ],
            "dailySales": [
                {"date": d.day.isoformat(), "sales": _money(d.revenue), "orders": d.order_count}
                for d in self.daily_sales
            ],
            "skuBreakdown": [
                {"name": p.name, "quantity": p.quantity, "revenue": _money(p.revenue)}
                for p in self.product_breakdown
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetricsSummary":
        return cls(
            total_revenue=Decimal(str(data.get("totalSales", "0"))),
            unique_order_count=int(data.get("totalOrders", 0)),
            average_order_value=Decimal(str(data.get("averageOrderValue", "0"))),
            status_breakdown=tuple(
                StatusCount(item["name"], int(item["value"]))
                for item in data.get("statusBreakdown", [])
            ),
            daily_sales=tuple(
                DailySales(
                    date.fromisoformat(item["date"]),
                    Decimal(str(item["sales"])),
                    int(item["orders"]),
                )
                for item in data.get("dailySales", [])
            ),
            product_breakdown=tuple(
                ProductSales(item["name"], int(item["quantity"]), Decimal(str(item["revenue"])))
                for item in data.get("skuBreakdown", [])
            ),
            cancelled_rows=int(data.get("cancelledOrdersCount", 0)),
            delivered_rows=int(data.get("deliveredOrdersCount", 0)),
            picked_up_rows=int(data.get("pickedUpOrdersCount", 0)),
        )
