"""SQLAlchemy model for user roles."""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from servicedesk.infrastructure.database import Base


class RoleModel(Base):
    """Roles notifications can be broadcast to (``admin``, ``technician``, ``user``)."""

    __tablename__ = "role"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)
    alias = Column(String(50), nullable=False, unique=True, index=True)
    users = relationship("UserModel", back_populates="role", lazy="select")


__all__ = ["RoleModel"]
