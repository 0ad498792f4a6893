"""External services used alongside printing."""

from snapreceipt.services.order_counter import OrderCounter, UpstashOrderCounter, STARTING_ORDER_NUMBER

__all__ = ["OrderCounter", "UpstashOrderCounter", "STARTING_ORDER_NUMBER"]
