"""
Prometheus metrics shared by the API and the order workflow.
"""

from prometheus_client import Counter, Histogram

http_requests_total = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "endpoint", "status"]
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds", "HTTP request duration", ["method", "endpoint"]
)

# status: success, rejected (client/business failure), error (storage failure)
orders_total = Counter("orders_total", "Total order placements", ["status"])
revenue_total = Counter("revenue_total_usd", "Total revenue of placed orders in USD")
order_placement_duration_seconds = Histogram(
    "order_placement_duration_seconds", "Time spent placing an order, rollback included"
)
