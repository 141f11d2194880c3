"""Gift-with-purchase webhooks for Shopify.

Receives cart and order webhooks, detects trigger products and injects a
complementary item into the cart (Storefront API) or order (Admin API
order edit).
"""

__version__ = "0.1.0"
