"""
Student model - the single record type managed by the service.

Field rules run whenever an attribute is assigned, on insert and update
alike: every text field is trimmed and must be non-empty, and the email is
lowercased and checked against the address pattern. The unique index on
``email`` is the authoritative uniqueness guarantee.
"""

import re
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String
from sqlalchemy.orm import validates
from student_service.database import Base
from student_service.errors import StudentValidationError

EMAIL_PATTERN = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*(?:\.\w{2,3})+$", re.ASCII)

USER_FIELDS = ("name", "address", "city", "state", "email", "phone")


def utcnow():
    return datetime.now(timezone.utc)


class Student(Base):
    """SQLAlchemy model for the students table."""
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique student identifier")
    name = Column(Text, nullable=False, doc="Student's full name")
    address = Column(Text, nullable=False, doc="Street address")
    city = Column(Text, nullable=False)
    state = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True, index=True,
                   doc="Normalized (trimmed, lowercased) email, unique across students")
    phone = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True,
                        doc="Timestamp when student record was created")
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
                        doc="Timestamp of the last modification")

    @validates("name", "address", "city", "state", "phone")
    def _validate_text(self, key, value):
        value = (value or "").strip()
        if not value:
            raise StudentValidationError(key, "{} is required".format(key))
        return value

    @validates("email")
    def _validate_email(self, key, value):
        value = normalize_email(value)
        if not value:
            raise StudentValidationError(key, "email is required")
        if not EMAIL_PATTERN.match(value):
            raise StudentValidationError(key, "Please enter a valid email address")
        return value

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}', email='{self.email}')>"


def normalize_email(email: str) -> str:
    """Trim and lowercase an email for storage and comparison."""
    if not email:
        return email
    return email.strip().lower()
