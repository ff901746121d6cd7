"""
Student store - persistence adapter over a SQLAlchemy session.

Every data operation the HTTP layer needs goes through ``StudentStore``.
Store failures are translated into the service's error taxonomy:

- unique index violation on email -> DuplicateEmailError
- model rule violation            -> StudentValidationError (raised by the model)
- malformed identifier            -> StoreError
- any other SQLAlchemy failure    -> StoreError

Uniqueness pre-checks in the routes are advisory; two concurrent writers can
both pass them, and the unique index then rejects the second write here.
"""

import time
import uuid
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from student_service.errors import DuplicateEmailError, StoreError, StudentValidationError
from student_service.logging_config import get_logger, log_with_context
from student_service.models.student import Student, normalize_email, utcnow

logger = get_logger("db")


def parse_student_id(student_id: str) -> str:
    """Return the canonical form of a student id, or raise StoreError if malformed."""
    try:
        return str(uuid.UUID(str(student_id)))
    except ValueError:
        raise StoreError("Invalid student id: {!r}".format(student_id))


class StudentStore:
    """Data operations on Student records, bound to one session."""

    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> List[Student]:
        """All students, most recently created first."""
        start_time = time.time()
        try:
            students = self.db.query(Student).order_by(Student.created_at.desc()).all()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

        log_with_context(logger, "DEBUG", "Fetched {} students".format(len(students)),
                         extra_data={"duration_ms": round((time.time() - start_time) * 1000, 2)})
        return students

    def find_by_id(self, student_id: str) -> Optional[Student]:
        student_id = parse_student_id(student_id)
        try:
            return self.db.get(Student, student_id)
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def find_one_by_email(self, email: str, exclude_id: str = None) -> Optional[Student]:
        """Find the student owning ``email`` (normalized), optionally ignoring one id."""
        query = self.db.query(Student).filter(Student.email == normalize_email(email))
        if exclude_id is not None:
            query = query.filter(Student.id != parse_student_id(exclude_id))
        try:
            return query.first()
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e

    def insert(self, fields: dict) -> Student:
        """
        Create a student from the six user fields.

        Raises:
            StudentValidationError: a field breaks a model rule
            DuplicateEmailError: the unique email index rejected the row
            StoreError: any other store failure
        """
        student = Student(**fields)
        self.db.add(student)
        self._commit(student.email)
        self.db.refresh(student)

        log_with_context(logger, "INFO", "Inserted student {}".format(student.id),
                         context={"student_id": student.id})
        return student

    def update_by_id(self, student_id: str, fields: dict) -> Optional[Student]:
        """
        Replace the six user fields of a student and refresh ``updated_at``.

        Returns None when no student has ``student_id``. On failure the
        session is rolled back, so the stored record is left unchanged.
        """
        student = self.find_by_id(student_id)
        if student is None:
            return None

        try:
            for key, value in fields.items():
                setattr(student, key, value)
        except StudentValidationError:
            self.db.rollback()
            raise
        student.updated_at = utcnow()
        self._commit(fields.get("email"))
        self.db.refresh(student)

        log_with_context(logger, "INFO", "Updated student {}".format(student.id),
                         context={"student_id": student.id})
        return student

    def delete_by_id(self, student_id: str) -> Optional[Student]:
        """Delete a student; returns the deleted record, or None if absent."""
        student = self.find_by_id(student_id)
        if student is None:
            return None

        deleted_id = student.id
        self.db.delete(student)
        self._commit()

        log_with_context(logger, "INFO", "Deleted student {}".format(deleted_id),
                         context={"student_id": deleted_id})
        return student

    def _commit(self, email: str = None):
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            log_with_context(logger, "WARNING", "Duplicate key on students.email",
                             context={"email": email}, extra_data={"error": str(e.orig)})
            raise DuplicateEmailError(email) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(str(e)) from e
