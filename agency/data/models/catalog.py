# agency/data/models/catalog.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Boolean, Numeric, Text, JSON, UniqueConstraint

from agency.data.database import Base, new_id, utcnow


class PackModel(Base):
    __tablename__ = "my_packs"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    price = Column(Numeric(10, 2), nullable=False)
    target = Column(String(255), nullable=True)
    short_description = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    position = Column(Integer, nullable=True)
    type = Column(String(50), nullable=False, default="basic")
    color = Column(String(50), nullable=True)
    features = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class ServiceModuleModel(Base):
    __tablename__ = "my_services"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class PackServiceModel(Base):
    """Serwisy wliczone w pack (panel admina)."""

    __tablename__ = "pack_services"
    __table_args__ = (UniqueConstraint("pack_id", "service_id", name="uq_pack_service"),)

    id = Column(String(36), primary_key=True, default=new_id)
    pack_id = Column(String(36), ForeignKey("my_packs.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("my_services.id"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
