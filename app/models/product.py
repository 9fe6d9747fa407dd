import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, Numeric, Text, DateTime, JSON
from ..database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    wix_product_id = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(10), nullable=True)
    stock_quantity = Column(Integer, nullable=True)
    in_stock = Column(Boolean, nullable=True)
    product_type = Column(String(50), nullable=True)
    sku = Column(String(100), nullable=True)

    payload = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Product {self.name}>"
