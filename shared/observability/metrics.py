from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_checkout_total = Counter(
    "ecomm_checkout_total", 
    "Total checkouts processed", 
    ["status"] # Labels: 'success', or the failure code ('cart_empty', 'insufficient_stock', ...)
)

ecomm_checkout_duration_seconds = Histogram(
    "ecomm_checkout_duration_seconds", 
    "Checkout duration in seconds"
)

ecomm_compensation_total = Counter(
    "ecomm_compensation_total", 
    "Total inventory compensations (restocks) triggered by cancellation", 
    ["reason"] # Labels: 'customer_cancel', 'staff_cancel'
)

ecomm_order_transitions_total = Counter(
    "ecomm_order_transitions_total",
    "Order status transitions applied",
    ["status"] # Labels: target status
)

ecomm_inventory_movements_total = Counter(
    "ecomm_inventory_movements_total",
    "Inventory ledger movements recorded",
    ["direction"] # Labels: 'in', 'out'
)

ecomm_side_effect_failures_total = Counter(
    "ecomm_side_effect_failures_total",
    "Post-commit side effects that failed and were dropped",
    ["channel"] # Labels: 'notification', 'email', 'activity'
)
