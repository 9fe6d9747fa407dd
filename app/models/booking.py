import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Numeric, Text, ForeignKey, DateTime, Index, JSON
from sqlalchemy.orm import relationship
from ..database import Base
import enum


class BookingStatus(str, enum.Enum):
    """Wix booking statuses as stored (lower-cased)"""
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELED = "canceled"
    DECLINED = "declined"
    WAITING_LIST = "waiting_list"


class Booking(Base):
    """Appointment mirrored from Wix Bookings. Keyed by wix_booking_id."""
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    wix_booking_id = Column(String(255), nullable=False, unique=True)

    # Linkage to the locally mirrored contact / customer
    contact_id = Column(String(36), ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)
    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)
    wix_contact_id = Column(String(255), nullable=True)

    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)

    service_name = Column(String(255), nullable=True)
    service_duration = Column(Integer, nullable=True)  # minutes
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    staff_member = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    number_of_participants = Column(Integer, nullable=True)

    status = Column(String(50), nullable=True)
    payment_status = Column(String(50), nullable=True)
    total_price = Column(Numeric(10, 2), nullable=True)
    notes = Column(Text, nullable=True)
    revision = Column(Integer, nullable=True)
    cancelled_date = Column(DateTime, nullable=True)

    payload = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contact = relationship("Contact", back_populates="bookings")
    customer = relationship("Customer", back_populates="bookings")

    __table_args__ = (
        Index("ix_booking_start_time", "start_time"),
        Index("ix_booking_wix_contact", "wix_contact_id"),
    )

    def __repr__(self):
        return f"<Booking {self.wix_booking_id} - {self.status}>"
