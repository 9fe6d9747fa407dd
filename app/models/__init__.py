# Models package
from .contact import Contact
from .customer import Customer
from .booking import Booking, BookingStatus
from .order import Order
from .loyalty import LoyaltyAccount
from .product import Product
from .webhook_log import WebhookLog, WebhookLogStatus

__all__ = [
    "Contact", "Customer",
    "Booking", "BookingStatus",
    "Order",
    "LoyaltyAccount",
    "Product",
    "WebhookLog", "WebhookLogStatus",
]
