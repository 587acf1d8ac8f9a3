# agency/data/models/order_item.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric

from agency.data.database import Base, new_id, utcnow


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    # bez ondelete, kompensacja usuwa zamowienie dopiero gdy itemy nie powstaly
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)

    item_type = Column(String(20), nullable=False)
    item_id = Column(String(36), nullable=False)
    quantity = Column(Integer, nullable=False)
    price_at_purchase = Column(Numeric(10, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
