import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import relationship
from ..database import Base


class Contact(Base):
    """
    Wix CRM contact as received by the webhook router.

    Either email or wix_contact_id may be the conflict key of an upsert,
    so both are unique.
    """
    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    wix_contact_id = Column(String(255), nullable=True, unique=True)
    email = Column(String(255), nullable=True, unique=True)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(JSON, nullable=True)
    labels = Column(JSON, nullable=True)
    birth_date = Column(String(20), nullable=True)
    subscriber_status = Column(String(50), nullable=True)

    payload = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings = relationship("Booking", back_populates="contact")
    orders = relationship("Order", back_populates="contact")

    def __repr__(self):
        return f"<Contact {self.name} - {self.email}>"
