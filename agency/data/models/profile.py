# agency/data/models/profile.py
from sqlalchemy import Column, String, Boolean, DateTime

from agency.data.database import Base, utcnow


class ClientProfileModel(Base):
    __tablename__ = "client_profiles"

    user_id = Column(String(36), primary_key=True)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
