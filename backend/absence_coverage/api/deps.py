# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from typing import Annotated, TypeVar

from fastapi import Depends, Header, Path, Response, status

from absence_coverage.exceptions import AppError
from absence_coverage.models.enums import ErrorType
from absence_coverage.ports.backfill import BackfillManagementPort, get_backfill_port
from absence_coverage.ports.holidays import HolidayCalendar, get_holiday_calendar
from absence_coverage.ports.pto import PtoManagementPort, get_pto_port
from absence_coverage.ports.training import TrainingManagementPort, get_training_port
from absence_coverage.schemas.auth import AuthContext
from absence_coverage.schemas.common import WorkflowResult

MANAGER_ROLES = frozenset({"admin", "director"})

_ResultT = TypeVar("_ResultT", bound=WorkflowResult)


async def get_auth_context(
    x_funeral_home_id: uuid.UUID = Header(),
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default="staff"),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(funeral_home_id=x_funeral_home_id, user_id=x_user_id, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_manager(
    auth: AuthDep,
) -> AuthContext:
    """Require an admin or director role for the request."""
    if auth.role not in MANAGER_ROLES:
        raise AppError("Manager access required", status_code=status.HTTP_403_FORBIDDEN)
    return auth


ManagerDep = Annotated[AuthContext, Depends(require_manager)]


async def validate_funeral_home_scope(
    funeral_home_id: uuid.UUID = Path(),
    auth: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """Ensure the path funeral_home_id matches the auth header funeral_home_id."""
    if funeral_home_id != auth.funeral_home_id:
        raise AppError("Funeral home ID mismatch", status_code=status.HTTP_403_FORBIDDEN)
    return auth


PtoPortDep = Annotated[PtoManagementPort, Depends(get_pto_port)]
TrainingPortDep = Annotated[TrainingManagementPort, Depends(get_training_port)]
BackfillPortDep = Annotated[BackfillManagementPort, Depends(get_backfill_port)]
HolidayCalendarDep = Annotated[HolidayCalendar, Depends(get_holiday_calendar)]


_ERROR_STATUS = {
    ErrorType.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorType.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorType.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorType.CONFLICT: status.HTTP_409_CONFLICT,
}


def result_status(result: WorkflowResult, success_status: int = status.HTTP_200_OK) -> int:
    """HTTP status for a use-case result, keyed on its ``error_type``."""
    if result.success:
        return success_status
    if result.error_type is None:
        return status.HTTP_400_BAD_REQUEST
    return _ERROR_STATUS[result.error_type]


def apply_result_status(
    response: Response,
    result: _ResultT,
    success_status: int = status.HTTP_200_OK,
) -> _ResultT:
    response.status_code = result_status(result, success_status)
    return result
