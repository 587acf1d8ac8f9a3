# agency/data/models/cart.py
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from agency.data.database import Base, new_id, utcnow


class CartModel(Base):
    __tablename__ = "shopping_cart"

    id = Column(String(36), primary_key=True, default=new_id)
    # brak unique na user_id, duplikaty sprzatane przy odczycie
    user_id = Column(String(36), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
    )
