"""
Unit tests for grouping joined transaction rows
"""
from shopcore.readmodel import group_transaction_rows


def _row(transaction_id, item_id, product_id=1, quantity=1, customer_id=7):
    return {
        "id": transaction_id,
        "customer_id": customer_id,
        "total_amount": 10,
        "status": "pending",
        "transaction_date": None,
        "item_id": item_id,
        "product_id": product_id,
        "product_name": f"P{product_id}" if product_id is not None else None,
        "quantity": quantity,
        "price_per_item": 5,
    }


class TestGroupTransactionRows:
    """Flat join rows -> nested transactions"""

    def test_empty(self):
        assert group_transaction_rows([]) == []

    def test_single_transaction_collects_items(self):
        rows = [_row(1, 10, product_id=1), _row(1, 11, product_id=2, quantity=3)]

        result = group_transaction_rows(rows)

        assert len(result) == 1
        assert result[0]["id"] == 1
        assert result[0]["customer_id"] == 7
        assert [i["item_id"] for i in result[0]["items"]] == [10, 11]
        assert result[0]["items"][1] == {
            "item_id": 11,
            "product_id": 2,
            "product_name": "P2",
            "quantity": 3,
            "price_per_item": 5,
        }

    def test_preserves_first_seen_order(self):
        """Interleaved rows keep the order each transaction id first appeared"""
        rows = [_row(5, 1), _row(2, 2), _row(5, 3), _row(9, 4), _row(2, 5)]

        result = group_transaction_rows(rows)

        assert [t["id"] for t in result] == [5, 2, 9]
        assert [i["item_id"] for i in result[0]["items"]] == [1, 3]
        assert [i["item_id"] for i in result[1]["items"]] == [2, 5]

    def test_header_without_items(self):
        rows = [_row(3, None, product_id=None, quantity=None)]

        result = group_transaction_rows(rows)

        assert result == [
            {
                "id": 3,
                "customer_id": 7,
                "total_amount": 10,
                "status": "pending",
                "transaction_date": None,
                "items": [],
            }
        ]

    def test_accepts_any_iterable(self):
        rows = (r for r in [_row(1, 1), _row(1, 2)])

        result = group_transaction_rows(rows)

        assert len(result[0]["items"]) == 2
