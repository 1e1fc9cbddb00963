from .setup import setup_observability
from .metrics import (
    ecomm_checkout_total,
    ecomm_checkout_duration_seconds,
    ecomm_compensation_total,
    ecomm_order_transitions_total,
    ecomm_inventory_movements_total,
    ecomm_side_effect_failures_total,
)
