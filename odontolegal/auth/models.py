from enum import Enum
from sqlalchemy import Column, String, Boolean, Enum as SAEnum
from odontolegal.database import Base
from odontolegal.shared.models import AuditMixin


class UserRole(str, Enum):
    ADMIN = "admin"
    EXPERT = "expert"
    STANDARD = "standard"


class User(Base, AuditMixin):
    __tablename__ = "users"

    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=True)
    full_name = Column(String, nullable=False)
    role = Column(SAEnum(UserRole), default=UserRole.STANDARD, nullable=False)
    is_active = Column(Boolean, default=True)
