"""tenkvendor — real-time order notifications for the 10kVendor storefront.

The notification layer that sits beside the catalog/cart/checkout API:
WebSocket rooms for admins and customers, order-status fan-out, and
Web Push as the fallback channel for customers who are not connected.
"""

__version__ = "0.1.0"
