"""
Order analysis report: counts by status, city and delivery method, revenue
and the most recent orders.

Usage:
    python report.py
"""
from collections import Counter
from typing import Any, Dict

from pymongo import DESCENDING
from pymongo.database import Database

from database import get_documents
from orders import round_money

RECENT_ORDERS = 5


def build_report(db: Database) -> Dict[str, Any]:
    orders = get_documents(db, "order", sort=[("created_at", DESCENDING)])
    revenue = round_money(sum(float(o.get("total", 0)) for o in orders))

    return {
        "totalOrders": len(orders),
        "byStatus": dict(Counter(o.get("status") for o in orders)),
        "byCity": dict(Counter(o.get("city") for o in orders)),
        "byDeliveryMethod": dict(Counter(o.get("deliveryMethod") for o in orders)),
        "totalRevenue": revenue,
        "averageOrderValue": round_money(revenue / len(orders)) if orders else 0.0,
        "recentOrders": [
            {
                "orderId": o.get("orderId"),
                "date": o["created_at"].date().isoformat() if o.get("created_at") else None,
                "customer": f"{o.get('firstName', '')} {o.get('lastName', '')}".strip(),
                "city": o.get("city"),
                "status": o.get("status"),
                "total": o.get("total"),
            }
            for o in orders[:RECENT_ORDERS]
        ],
    }


def print_report(report: Dict[str, Any]) -> None:
    if not report["totalOrders"]:
        print("No orders found in the database.")
        return

    print("=== ORDER ANALYSIS REPORT ===")
    print(f"Total Orders: {report['totalOrders']}")
    for title, key in (("Orders by Status", "byStatus"), ("Orders by City", "byCity"),
                       ("Delivery Methods", "byDeliveryMethod")):
        print(f"\n{title}:")
        for name, count in sorted(report[key].items(), key=lambda kv: -kv[1]):
            print(f"  {name}: {count}")
    print(f"\nTotal Revenue: {report['totalRevenue']:.2f} DZD")
    print(f"Average Order Value: {report['averageOrderValue']:.2f} DZD")
    print("\nRecent Orders:")
    for row in report["recentOrders"]:
        print(f"  {row['orderId']}  {row['date']}  {row['customer']}  {row['city']}  "
              f"{row['status']}  {row['total']} DZD")


def main() -> None:
    from config import Settings
    from database import connect

    db = connect(Settings.from_env())
    try:
        print_report(build_report(db))
    finally:
        db.client.close()


if __name__ == "__main__":
    main()
