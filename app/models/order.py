import uuid
from datetime import datetime
from sqlalchemy import Column, String, Numeric, ForeignKey, DateTime, Index, JSON
from sqlalchemy.orm import relationship
from ..database import Base


class Order(Base):
    """eCom / Stores order mirrored from Wix. Keyed by wix_order_id."""
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    wix_order_id = Column(String(255), nullable=False, unique=True)
    order_number = Column(String(50), nullable=True)

    contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    wix_contact_id = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)

    status = Column(String(50), nullable=True)
    payment_status = Column(String(50), nullable=True)
    previous_payment_status = Column(String(50), nullable=True)
    total_amount = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(10), nullable=True)
    items = Column(JSON, nullable=True)
    billing_info = Column(JSON, nullable=True)
    shipping_info = Column(JSON, nullable=True)
    order_date = Column(DateTime, nullable=True)

    payload = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contact = relationship("Contact", back_populates="orders")
    customer = relationship("Customer", back_populates="orders")

    __table_args__ = (
        Index("ix_order_customer_email", "customer_email"),
    )

    def __repr__(self):
        return f"<Order {self.order_number or self.wix_order_id} - {self.payment_status}>"
