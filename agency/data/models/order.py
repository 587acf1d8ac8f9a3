# agency/data/models/order.py
from sqlalchemy import Column, String, DateTime, Numeric

from agency.data.database import Base, new_id, utcnow


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="pending")  # pending, paid, processing, completed, cancelled
    payment_method = Column(String(50), nullable=True)
    payment_id = Column(String(255), nullable=True)
    total_amount = Column(Numeric(10, 2), nullable=False)
    installment_plan = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
