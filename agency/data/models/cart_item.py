# agency/data/models/cart_item.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime
from sqlalchemy.orm import relationship

from agency.data.database import Base, new_id, utcnow


class CartItemModel(Base):
    __tablename__ = "shopping_cart_items"

    id = Column(String(36), primary_key=True, default=new_id)
    cart_id = Column(String(36), ForeignKey("shopping_cart.id", ondelete="CASCADE"), nullable=False, index=True)

    item_type = Column(String(20), nullable=False)  # pack, service
    item_id = Column(String(36), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    cart = relationship("CartModel", back_populates="items")
