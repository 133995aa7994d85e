"""
User model with secure password storage and a single role.
"""

from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin

ROLES = ("admin", "manager", "receptionist", "guest")
STAFF_ROLES = ("admin", "manager", "receptionist")


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="guest")
    is_active = Column(Boolean, default=True, nullable=False)

    bookings = relationship("Booking", back_populates="user")

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'manager', 'receptionist', 'guest')", name="check_user_role"
        ),
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
