import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON
from ..database import Base


class LoyaltyAccount(Base):
    """Wix loyalty account, one per Wix contact (contact_id is the Wix contact id)"""
    __tablename__ = "loyalty"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    contact_id = Column(String(255), nullable=False, unique=True)
    wix_loyalty_id = Column(String(255), nullable=True)
    contact_name = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)

    points_balance = Column(Integer, nullable=True)
    redeemed_points = Column(Integer, nullable=True)
    earned_points = Column(Integer, nullable=True)
    tier = Column(String(100), nullable=True)
    last_activity = Column(DateTime, nullable=True)

    payload = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<LoyaltyAccount {self.contact_id} - {self.points_balance}>"
