"""
User model for CourseTrack LMS.

Defines the User table with authentication fields, role flags, and the
learner's enrollment list.
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy import Boolean, Integer, String, DateTime, Index, JSON
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy.sql import func

from app.core.database import Base


class User(Base):
    """
    User model for authentication and enrollment tracking.
    """
    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Authentication fields
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False
    )
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        index=True,
        nullable=False
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile fields
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Status fields
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Enrollment list (course ids, in enrollment order)
    enrolled_course_ids: Mapped[List[int]] = mapped_column(JSON, default=list, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    progress_records = relationship("UserProgress", back_populates="user", cascade="all, delete-orphan")

    # Table constraints
    __table_args__ = (
        Index("idx_user_username_active", "username", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', email='{self.email}')>"

    @property
    def role(self) -> str:
        return "admin" if self.is_admin else "learner"

    def add_enrolled_course(self, course_id: int) -> None:
        """Record an enrollment; reassigning the list lets the JSON column see the change."""
        enrolled = self.enrolled_course_ids or []
        if course_id not in enrolled:
            self.enrolled_course_ids = enrolled + [course_id]
