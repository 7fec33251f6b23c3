"""
Transaction read model.

The transaction reads (by id, by customer, all) fetch one flat row per line
item, with the header columns repeated on every row. ``group_transaction_rows``
folds those rows back into nested orders and is the only place that shape is
built.
"""

from typing import Any, Dict, Iterable, List, Mapping

HEADER_FIELDS = ("id", "customer_id", "total_amount", "status", "transaction_date")
ITEM_FIELDS = ("item_id", "product_id", "product_name", "quantity", "price_per_item")


def group_transaction_rows(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """
    Group joined transaction/item rows by transaction id.

    Transactions come out in the order their id is first seen; items keep
    their row order. A row whose ``item_id`` is None (an order with no items
    under an outer join) contributes the header only.
    """
    grouped: Dict[Any, Dict[str, Any]] = {}
    for row in rows:
        transaction = grouped.get(row["id"])
        if transaction is None:
            transaction = {field: row[field] for field in HEADER_FIELDS}
            transaction["items"] = []
            grouped[row["id"]] = transaction

        if row["item_id"] is not None:
            transaction["items"].append({field: row[field] for field in ITEM_FIELDS})

    return list(grouped.values())
