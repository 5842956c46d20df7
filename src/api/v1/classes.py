# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Class management API endpoints.

This module provides endpoints for class management:
- GET / - List active classes with filtering
- GET /teacher/{teacher_id} - List classes taught by a teacher
- GET /{class_id} - Get class details with roster
- POST / - Create a new class
- PUT /{class_id} - Update class
- DELETE /{class_id} - Deactivate class and its students

Roster endpoints:
- POST /{class_id}/students - Enroll a student
- DELETE /{class_id}/students/{student_id} - Remove a student

Teacher assignment endpoints:
- PUT /{class_id}/teacher - Assign a teacher
- DELETE /{class_id}/teacher - Unassign the teacher

Mutations require the manager role. Teachers may unassign themselves.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import DB, AuthenticatedUser, ManagerUser, RequireRole
from src.api.middleware.auth import CurrentUser
from src.domains.class_.service import ClassService
from src.infrastructure.database.models.user import UserRole
from src.models.class_ import (
    AddStudentRequest,
    AssignTeacherRequest,
    ClassCreateRequest,
    ClassResponse,
    ClassSummary,
    ClassUpdateRequest,
)
from src.models.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, AckResponse, PaginatedResponse

logger = logging.getLogger(__name__)

router = APIRouter()

ManagerOrTeacher = Annotated[
    CurrentUser,
    Depends(RequireRole(UserRole.MANAGER.value, UserRole.TEACHER.value)),
]


def _get_service(db: AsyncSession) -> ClassService:
    """Get class service instance.

    Args:
        db: Database session.

    Returns:
        Configured ClassService instance.
    """
    return ClassService(db=db)


@router.get(
    "",
    response_model=PaginatedResponse[ClassSummary],
    summary="List classes",
    description="List active classes, optionally filtered by teacher or name.",
)
async def list_classes(
    db: DB,
    current_user: AuthenticatedUser,
    teacher_id: str | None = Query(None, alias="teacherId", description="Filter by teacher"),
    search: str | None = Query(None, description="Search in class name"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> PaginatedResponse[ClassSummary]:
    """List classes."""
    classes, total = await _get_service(db).list_classes(
        teacher_id=teacher_id,
        search=search,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return PaginatedResponse.build(classes, total, page, limit)


@router.get(
    "/teacher/{teacher_id}",
    response_model=list[ClassResponse],
    summary="List classes by teacher",
)
async def list_classes_by_teacher(
    teacher_id: str,
    db: DB,
    current_user: AuthenticatedUser,
) -> list[ClassResponse]:
    """List the active classes a teacher owns."""
    return await _get_service(db).list_classes_by_teacher(teacher_id)


@router.get(
    "/{class_id}",
    response_model=ClassResponse,
    summary="Get class",
)
async def get_class(class_id: str, db: DB, current_user: AuthenticatedUser) -> ClassResponse:
    """Get class details with its teacher and roster."""
    return await _get_service(db).get_class(class_id)


@router.post(
    "",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create class",
)
async def create_class(
    data: ClassCreateRequest,
    db: DB,
    current_user: ManagerUser,
) -> ClassResponse:
    """Create a class owned by an active teacher."""
    return await _get_service(db).create_class(data, created_by=current_user.id)


@router.put(
    "/{class_id}",
    response_model=ClassResponse,
    summary="Update class",
    description="Capacity may not drop below the current roster size.",
)
async def update_class(
    class_id: str,
    data: ClassUpdateRequest,
    db: DB,
    current_user: ManagerUser,
) -> ClassResponse:
    """Update a class."""
    return await _get_service(db).update_class(class_id, data)


@router.delete(
    "/{class_id}",
    response_model=AckResponse,
    summary="Deactivate class",
)
async def deactivate_class(class_id: str, db: DB, current_user: ManagerUser) -> AckResponse:
    """Deactivate a class and every student on its roster."""
    count = await _get_service(db).deactivate_class(class_id)
    return AckResponse(message=f"Class deactivated ({count} students deactivated)")


@router.post(
    "/{class_id}/students",
    response_model=ClassResponse,
    summary="Add student to class",
)
async def add_student(
    class_id: str,
    data: AddStudentRequest,
    db: DB,
    current_user: ManagerUser,
) -> ClassResponse:
    """Enroll an existing student, respecting class capacity."""
    return await _get_service(db).add_student(class_id, data.student_id)


@router.delete(
    "/{class_id}/students/{student_id}",
    response_model=ClassResponse,
    summary="Remove student from class",
)
async def remove_student(
    class_id: str,
    student_id: str,
    db: DB,
    current_user: ManagerUser,
) -> ClassResponse:
    """Remove a student from the roster and deactivate it."""
    return await _get_service(db).remove_student(class_id, student_id)


@router.put(
    "/{class_id}/teacher",
    response_model=ClassResponse,
    summary="Assign teacher",
)
async def assign_teacher(
    class_id: str,
    data: AssignTeacherRequest,
    db: DB,
    current_user: ManagerUser,
) -> ClassResponse:
    """Make an active teacher the owner of a class."""
    return await _get_service(db).assign_teacher(class_id, data.teacher_id)


@router.delete(
    "/{class_id}/teacher",
    response_model=ClassResponse,
    summary="Unassign teacher",
    description="Managers may unassign anyone; teachers only themselves.",
)
async def unassign_teacher(
    class_id: str,
    db: DB,
    current_user: ManagerOrTeacher,
) -> ClassResponse:
    """Remove the teacher of a class."""
    return await _get_service(db).unassign_teacher(class_id, current_user)
