"""
Students API routes - CRUD operations on student records.

Provides endpoints for:
- Listing students (newest first)
- Viewing, creating, updating and deleting a student

Each handler catches its own failures and raises ``HTTPException`` with the
status code and message the API contract defines; ``errors.py`` renders
them as ``{"message": ..., "error": ...}`` bodies.
"""

from datetime import datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from student_service.database import get_db
from student_service.errors import (
    DuplicateEmailError, StoreError, StudentValidationError, error_body,
    NOT_FOUND_MESSAGE, DUPLICATE_EMAIL_MESSAGE, REQUIRED_FIELDS_MESSAGE
)
from student_service.models.student import Student, USER_FIELDS
from student_service.services.student_store import StudentStore
from student_service.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("students")


# ── Pydantic schemas ─────────────────────────────────────────

class StudentPayload(BaseModel):
    """
    Request body for create and update.

    Every field is optional here so that a missing field reaches the
    handler's required-field check instead of failing schema validation.
    Numbers are accepted and stored as their string form (e.g. a numeric phone).
    """
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    def missing_fields(self) -> List[str]:
        return [f for f in USER_FIELDS if not getattr(self, f)]

    def fields(self) -> dict:
        return {f: getattr(self, f) for f in USER_FIELDS}


class StudentRead(BaseModel):
    """Schema for a student in API responses."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    address: str
    city: str
    state: str
    email: str
    phone: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class MessageResponse(BaseModel):
    message: str


def _as_utc(value: datetime) -> Optional[str]:
    if value is None:
        return None
    # SQLite hands timestamps back without an offset; they are stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def serialize_student(student: Student) -> dict:
    """Serialize a Student ORM object to a dict for API response."""
    return {
        "id": str(student.id),
        "name": student.name,
        "address": student.address,
        "city": student.city,
        "state": student.state,
        "email": student.email,
        "phone": student.phone,
        "createdAt": _as_utc(student.created_at),
        "updatedAt": _as_utc(student.updated_at),
    }


def get_student_store(db: Session = Depends(get_db)) -> StudentStore:
    return StudentStore(db)


def _require_all_fields(payload: Optional[StudentPayload]) -> StudentPayload:
    # No body at all is treated as an empty object
    if payload is None:
        payload = StudentPayload()
    missing = payload.missing_fields()
    if missing:
        log_with_context(logger, "INFO", "Rejected student payload: missing fields",
                         extra_data={"missing": missing})
        raise HTTPException(status_code=400, detail=REQUIRED_FIELDS_MESSAGE)
    return payload


@router.get("/students", response_model=List[StudentRead])
def list_students(store: StudentStore = Depends(get_student_store)):
    """List all students, most recently created first."""
    try:
        students = store.find_all()
    except StoreError as e:
        log_with_context(logger, "ERROR", "Failed to list students: {}".format(e))
        raise HTTPException(status_code=500, detail=error_body("Error fetching students", str(e)))

    return [serialize_student(s) for s in students]


@router.get("/students/{student_id}", response_model=StudentRead)
def get_student(student_id: str, store: StudentStore = Depends(get_student_store)):
    try:
        student = store.find_by_id(student_id)
    except StoreError as e:
        log_with_context(logger, "ERROR", "Failed to fetch student: {}".format(e),
                         context={"student_id": student_id})
        raise HTTPException(status_code=500, detail=error_body("Error fetching student", str(e)))

    if not student:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)

    return serialize_student(student)


@router.post("/students", response_model=StudentRead, status_code=201)
def create_student(payload: Optional[StudentPayload] = Body(None),
                   store: StudentStore = Depends(get_student_store)):
    """
    Create a student.

    Order of checks:
    1. All six fields present and non-empty
    2. No existing student owns the (normalized) email
    3. Model rules applied at write time; the unique index is the final word
    """
    payload = _require_all_fields(payload)

    try:
        if store.find_one_by_email(payload.email):
            raise DuplicateEmailError(payload.email)
        student = store.insert(payload.fields())
    except DuplicateEmailError:
        log_with_context(logger, "INFO", "Rejected duplicate email on create",
                         context={"email": payload.email})
        raise HTTPException(status_code=400, detail=DUPLICATE_EMAIL_MESSAGE)
    except (StudentValidationError, StoreError) as e:
        log_with_context(logger, "WARNING", "Failed to create student: {}".format(e))
        raise HTTPException(status_code=400, detail=error_body("Error creating student", str(e)))

    log_with_context(logger, "INFO", "Created student {}".format(student.id),
                     context={"student_id": student.id})
    return serialize_student(student)


@router.put("/students/{student_id}", response_model=StudentRead)
def update_student(student_id: str, payload: Optional[StudentPayload] = Body(None),
                   store: StudentStore = Depends(get_student_store)):
    """
    Replace all six fields of a student.

    The email may stay the same; it is rejected only when a different
    student already owns it.
    """
    payload = _require_all_fields(payload)

    try:
        if store.find_one_by_email(payload.email, exclude_id=student_id):
            raise DuplicateEmailError(payload.email)
        student = store.update_by_id(student_id, payload.fields())
    except DuplicateEmailError:
        log_with_context(logger, "INFO", "Rejected duplicate email on update",
                         context={"student_id": student_id, "email": payload.email})
        raise HTTPException(status_code=400, detail=DUPLICATE_EMAIL_MESSAGE)
    except (StudentValidationError, StoreError) as e:
        log_with_context(logger, "WARNING", "Failed to update student: {}".format(e),
                         context={"student_id": student_id})
        raise HTTPException(status_code=400, detail=error_body("Error updating student", str(e)))

    if not student:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)

    log_with_context(logger, "INFO", "Updated student {}".format(student.id),
                     context={"student_id": student.id})
    return serialize_student(student)


@router.delete("/students/{student_id}", response_model=MessageResponse)
def delete_student(student_id: str, store: StudentStore = Depends(get_student_store)):
    try:
        student = store.delete_by_id(student_id)
    except StoreError as e:
        log_with_context(logger, "ERROR", "Failed to delete student: {}".format(e),
                         context={"student_id": student_id})
        raise HTTPException(status_code=500, detail=error_body("Error deleting student", str(e)))

    if not student:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)

    return {"message": "Student deleted successfully"}
