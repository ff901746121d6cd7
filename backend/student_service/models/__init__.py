from student_service.models.student import Student

__all__ = ["Student"]
