# agency/data/models/system_constant.py
from sqlalchemy import Column, String, JSON

from agency.data.database import Base


class SystemConstantModel(Base):
    __tablename__ = "system_constants"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)
