# reparto/models/organization.py
import enum
from sqlalchemy import Column, Integer, String, Boolean, Enum, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from reparto.database import Base


class Plan(str, enum.Enum):
    INDIVIDUAL = "individual"   # Un solo sodero, vehículo = depósito
    BUSINESS = "business"
    ENTERPRISE = "enterprise"


class Tenant(Base):
    """
    Cuenta de una sodería. Todas las tablas de negocio cuelgan de aquí.
    """
    __tablename__ = "tenants"
    __table_args__ = {'extend_existing': True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    owner_email = Column(String, unique=True, index=True, nullable=True)

    plan = Column(Enum(Plan), default=Plan.INDIVIDUAL, nullable=False)
    max_users = Column(Integer, default=1, nullable=False)
    current_user_count = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    users = relationship("User", back_populates="tenant")
