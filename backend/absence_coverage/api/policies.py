# ruff: noqa: TC001
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from absence_coverage.api.deps import (
    AuthDep,
    ManagerDep,
    PtoPortDep,
    TrainingPortDep,
    validate_funeral_home_scope,
)
from absence_coverage.schemas.policy import (
    BlackoutDate,
    CreatePtoPolicyPayload,
    CreateTrainingPolicyPayload,
    PtoPolicy,
    PtoPolicyHistoryResponse,
    TrainingPolicy,
    TrainingPolicyHistoryResponse,
    UpdatePtoPolicyPayload,
    UpdateTrainingPolicyPayload,
)
from absence_coverage.services import policy as policy_service

router = APIRouter(
    prefix="/funeral-homes/{funeral_home_id}/policies",
    tags=["policies"],
    dependencies=[Depends(validate_funeral_home_scope)],
)


# ---------------------------------------------------------------------------
# PTO policy
# ---------------------------------------------------------------------------


@router.post("/pto", response_model=PtoPolicy, status_code=status.HTTP_201_CREATED)
async def create_pto_policy(
    payload: CreatePtoPolicyPayload,
    port: PtoPortDep,
    auth: ManagerDep,
) -> PtoPolicy:
    """Create the first PTO policy version for the funeral home."""
    return await policy_service.create_pto_policy(port, auth, payload)


@router.get("/pto", response_model=PtoPolicy)
async def get_pto_policy(port: PtoPortDep, auth: AuthDep) -> PtoPolicy:
    """Get the current PTO policy version."""
    return await policy_service.get_current_pto_policy(port, auth.funeral_home_id)


@router.patch("/pto", response_model=PtoPolicy)
async def update_pto_policy(
    payload: UpdatePtoPolicyPayload,
    port: PtoPortDep,
    auth: ManagerDep,
) -> PtoPolicy:
    """Supersede the current PTO policy with a new version."""
    return await policy_service.update_pto_policy(port, auth, payload)


@router.get("/pto/history", response_model=PtoPolicyHistoryResponse)
async def get_pto_policy_history(port: PtoPortDep, auth: AuthDep) -> PtoPolicyHistoryResponse:
    """List every PTO policy version, newest first."""
    return await policy_service.get_pto_policy_history(port, auth.funeral_home_id)


@router.post("/pto/blackout-dates", response_model=PtoPolicy, status_code=status.HTTP_201_CREATED)
async def add_pto_blackout_date(
    blackout: BlackoutDate,
    port: PtoPortDep,
    auth: ManagerDep,
) -> PtoPolicy:
    """Add a blackout period; creates a new policy version."""
    return await policy_service.add_pto_blackout_date(port, auth, blackout)


@router.delete("/pto/blackout-dates/{name}", response_model=PtoPolicy)
async def remove_pto_blackout_date(
    name: str,
    port: PtoPortDep,
    auth: ManagerDep,
) -> PtoPolicy:
    """Remove a blackout period by name; creates a new policy version."""
    return await policy_service.remove_pto_blackout_date(port, auth, name)


# ---------------------------------------------------------------------------
# Training policy
# ---------------------------------------------------------------------------


@router.post("/training", response_model=TrainingPolicy, status_code=status.HTTP_201_CREATED)
async def create_training_policy(
    payload: CreateTrainingPolicyPayload,
    port: TrainingPortDep,
    auth: ManagerDep,
) -> TrainingPolicy:
    """Create the first training policy version for the funeral home."""
    return await policy_service.create_training_policy(port, auth, payload)


@router.get("/training", response_model=TrainingPolicy)
async def get_training_policy(port: TrainingPortDep, auth: AuthDep) -> TrainingPolicy:
    return await policy_service.get_current_training_policy(port, auth.funeral_home_id)


@router.patch("/training", response_model=TrainingPolicy)
async def update_training_policy(
    payload: UpdateTrainingPolicyPayload,
    port: TrainingPortDep,
    auth: ManagerDep,
) -> TrainingPolicy:
    """Supersede the current training policy with a new version."""
    return await policy_service.update_training_policy(port, auth, payload)


@router.get("/training/history", response_model=TrainingPolicyHistoryResponse)
async def get_training_policy_history(port: TrainingPortDep, auth: AuthDep) -> TrainingPolicyHistoryResponse:
    return await policy_service.get_training_policy_history(port, auth.funeral_home_id)
