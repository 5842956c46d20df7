# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student management API endpoints.

- GET / - List active students
- GET /class/{class_id} - List the active students of a class
- GET /{student_id} - Get student details
- POST / - Create a student in a class (manager)
- PUT /{student_id} - Update, move or reactivate a student (manager)
- DELETE /{student_id} - Deactivate a student (manager)
"""

import logging

from fastapi import APIRouter, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import DB, AuthenticatedUser, ManagerUser
from src.domains.student.service import StudentService
from src.models.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, AckResponse, PaginatedResponse
from src.models.student import StudentCreateRequest, StudentResponse, StudentUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> StudentService:
    """Get student service instance."""
    return StudentService(db=db)


@router.get(
    "",
    response_model=PaginatedResponse[StudentResponse],
    summary="List students",
)
async def list_students(
    db: DB,
    current_user: AuthenticatedUser,
    class_id: str | None = Query(None, alias="classId", description="Filter by class"),
    search: str | None = Query(None, description="Search in names and student code"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> PaginatedResponse[StudentResponse]:
    """List active students."""
    students, total = await _get_service(db).list_students(
        class_id=class_id,
        search=search,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return PaginatedResponse.build(students, total, page, limit)


@router.get(
    "/class/{class_id}",
    response_model=list[StudentResponse],
    summary="List students by class",
)
async def list_students_by_class(
    class_id: str,
    db: DB,
    current_user: AuthenticatedUser,
) -> list[StudentResponse]:
    """List the active students enrolled in a class."""
    return await _get_service(db).list_students_by_class(class_id)


@router.get(
    "/{student_id}",
    response_model=StudentResponse,
    summary="Get student",
)
async def get_student(student_id: str, db: DB, current_user: AuthenticatedUser) -> StudentResponse:
    """Get student details."""
    return await _get_service(db).get_student(student_id)


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create student",
    description="Create a student and enroll it in an active class with free capacity.",
)
async def create_student(
    data: StudentCreateRequest,
    db: DB,
    current_user: ManagerUser,
) -> StudentResponse:
    """Create a student."""
    return await _get_service(db).create_student(data)


@router.put(
    "/{student_id}",
    response_model=StudentResponse,
    summary="Update student",
)
async def update_student(
    student_id: str,
    data: StudentUpdateRequest,
    db: DB,
    current_user: ManagerUser,
) -> StudentResponse:
    """Update a student. isActive=true reactivates it into its class."""
    return await _get_service(db).update_student(student_id, data)


@router.delete(
    "/{student_id}",
    response_model=AckResponse,
    summary="Deactivate student",
)
async def deactivate_student(student_id: str, db: DB, current_user: ManagerUser) -> AckResponse:
    """Soft-delete a student and pull it from its class roster."""
    await _get_service(db).deactivate_student(student_id)
    return AckResponse(message="Student deactivated")
