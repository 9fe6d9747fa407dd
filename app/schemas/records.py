"""
Typed rows produced by the field mapper.

Every field is optional. Records are built from only the fields that were
present in the Wix entity and dumped with exclude_unset=True, so an absent
source field never becomes a column write. Explicit nulls survive.
"""

from pydantic import BaseModel
from typing import Optional, Any
from datetime import datetime


class WixRecord(BaseModel):
    payload: Optional[Any] = None

    class Config:
        extra = "forbid"

    def to_row(self) -> dict:
        return self.model_dump(exclude_unset=True)


class BookingRecord(WixRecord):
    wix_booking_id: Optional[str] = None
    wix_contact_id: Optional[str] = None
    contact_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    service_name: Optional[str] = None
    service_duration: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    staff_member: Optional[str] = None
    location: Optional[str] = None
    number_of_participants: Optional[int] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    total_price: Optional[float] = None
    notes: Optional[str] = None
    revision: Optional[int] = None
    cancelled_date: Optional[datetime] = None


class ContactRecord(WixRecord):
    wix_contact_id: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Any] = None
    labels: Optional[Any] = None
    birth_date: Optional[str] = None
    subscriber_status: Optional[str] = None


class CustomerRecord(BaseModel):
    wix_contact_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        extra = "forbid"

    def to_row(self) -> dict:
        return self.model_dump(exclude_unset=True)


class OrderRecord(WixRecord):
    wix_order_id: Optional[str] = None
    order_number: Optional[str] = None
    contact_id: Optional[str] = None
    customer_id: Optional[str] = None
    wix_contact_id: Optional[str] = None
    customer_email: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    previous_payment_status: Optional[str] = None
    total_amount: Optional[float] = None
    currency: Optional[str] = None
    items: Optional[Any] = None
    billing_info: Optional[Any] = None
    shipping_info: Optional[Any] = None
    order_date: Optional[datetime] = None


class LoyaltyRecord(WixRecord):
    contact_id: Optional[str] = None
    wix_loyalty_id: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    points_balance: Optional[int] = None
    redeemed_points: Optional[int] = None
    earned_points: Optional[int] = None
    tier: Optional[str] = None
    last_activity: Optional[datetime] = None


class ProductRecord(WixRecord):
    wix_product_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    stock_quantity: Optional[int] = None
    in_stock: Optional[bool] = None
    product_type: Optional[str] = None
    sku: Optional[str] = None
