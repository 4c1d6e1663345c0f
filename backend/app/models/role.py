"""UserRole ORM model — role grants backing the default authorization check."""
import enum
from sqlalchemy import Column, String, DateTime, Enum as SAEnum, Integer, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base


class Role(str, enum.Enum):
    admin = "admin"
    community_admin = "community_admin"
    facility_manager = "facility_manager"
    resident = "resident"


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", "facility_id", name="uq_user_roles_grant"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, index=True)
    role = Column(SAEnum(Role), nullable=False)
    facility_id = Column(String(36), nullable=True)  # null = every facility
    granted_at = Column(DateTime(timezone=True), server_default=func.now())
