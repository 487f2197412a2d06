# ruff: noqa: TC003
"""PTO and training policy versioning.

Policies are SCD2-versioned: an update never edits the current version in
place, it end-dates it (``is_current=False``, ``valid_to=now``) and appends
version ``n + 1``. The pure helpers build those values; the async flows at the
bottom persist them through the management ports.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, TypeVar

from fastapi import status

from absence_coverage.exceptions import AppError, NotFoundError
from absence_coverage.models.enums import CertificationRenewalPeriod
from absence_coverage.schemas.common import utc_now
from absence_coverage.schemas.policy import (
    BlackoutDate,
    PtoPolicy,
    PtoPolicyHistoryResponse,
    PtoPolicySettings,
    RequiredCertification,
    RolePtoPolicy,
    RoleTrainingRequirement,
    TrainingPolicy,
    TrainingPolicyHistoryResponse,
    TrainingPolicySettings,
)
from absence_coverage.services.intervals import inclusive_overlaps

if TYPE_CHECKING:
    from pydantic import BaseModel

    from absence_coverage.ports.pto import PtoManagementPort
    from absence_coverage.ports.training import TrainingManagementPort
    from absence_coverage.schemas.auth import AuthContext
    from absence_coverage.schemas.policy import (
        CreatePtoPolicyPayload,
        CreateTrainingPolicyPayload,
        UpdatePtoPolicyPayload,
        UpdateTrainingPolicyPayload,
    )

logger = logging.getLogger(__name__)


def pto_business_key(funeral_home_id: uuid.UUID) -> str:
    return f"pto-policy:{funeral_home_id}"


def training_business_key(funeral_home_id: uuid.UUID) -> str:
    return f"training-policy:{funeral_home_id}"


_SettingsT = TypeVar("_SettingsT", PtoPolicySettings, TrainingPolicySettings)


def _merge_settings(current: _SettingsT, update: BaseModel) -> _SettingsT:
    """Overlay the explicitly set fields of ``update`` onto ``current`` and revalidate."""
    merged: dict[str, Any] = current.model_dump()
    merged.update(update.model_dump(exclude_unset=True, exclude_none=True))
    return type(current).model_validate(merged)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def default_pto_settings() -> PtoPolicySettings:
    return PtoPolicySettings(
        min_advance_notice_days=14,
        min_advance_notice_holidays_days=30,
        annual_pto_days_per_employee=20,
        max_concurrent_employees_on_pto=2,
        max_consecutive_pto_days=10,
        role_policies={
            "director": RolePtoPolicy(
                role="director", requires_director_approval=True, requires_backfill=True, max_concurrent_employees=1
            ),
            "embalmer": RolePtoPolicy(role="embalmer", requires_backfill=True, max_concurrent_employees=2),
            "staff": RolePtoPolicy(role="staff", max_concurrent_employees=3),
        },
        blackout_dates=(),
        enable_premium_pay_for_backfill=True,
        premium_multiplier=1.5,
    )


def default_training_settings() -> TrainingPolicySettings:
    return TrainingPolicySettings(
        role_requirements={
            "director": RoleTrainingRequirement(
                role="director",
                required_certifications=(
                    RequiredCertification(
                        certification_id="funeral-director-license",
                        certification_name="Funeral Director License",
                        training_type="funeral_directing",
                        renewal_period=CertificationRenewalPeriod.TRIENNIAL,
                        renewal_days_notice=90,
                        estimated_hours=24,
                        estimated_cost=500,
                    ),
                ),
                annual_training_hours_budget=40,
                annual_training_budget=2000,
                max_training_days_per_year=10,
            ),
            "embalmer": RoleTrainingRequirement(
                role="embalmer",
                required_certifications=(
                    RequiredCertification(
                        certification_id="embalming-license",
                        certification_name="Embalming License",
                        training_type="embalming",
                        renewal_period=CertificationRenewalPeriod.BIENNIAL,
                        renewal_days_notice=60,
                        estimated_hours=32,
                        estimated_cost=600,
                    ),
                    RequiredCertification(
                        certification_id="restorative-art",
                        certification_name="Restorative Art",
                        training_type="restorative_art",
                        renewal_period=CertificationRenewalPeriod.BIENNIAL,
                        renewal_days_notice=60,
                        estimated_hours=16,
                        estimated_cost=300,
                    ),
                ),
                annual_training_hours_budget=32,
                annual_training_budget=1500,
                max_training_days_per_year=8,
            ),
            "staff": RoleTrainingRequirement(
                role="staff",
                required_certifications=(
                    RequiredCertification(
                        certification_id="customer-service",
                        certification_name="Customer Service",
                        training_type="customer_service",
                        renewal_period=CertificationRenewalPeriod.ANNUAL,
                        renewal_days_notice=30,
                        estimated_hours=8,
                        estimated_cost=200,
                    ),
                ),
                annual_training_hours_budget=16,
                annual_training_budget=500,
                requires_director_approval_for_training=True,
                max_training_days_per_year=4,
            ),
        },
        enable_training_backfill=True,
        backfill_premium_multiplier=1.25,
        default_renewal_notice_days=60,
        approval_required_above_cost=1000,
    )


def create_default_pto_policy(
    funeral_home_id: uuid.UUID,
    created_by: uuid.UUID,
    settings: PtoPolicySettings | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> PtoPolicy:
    """Version 1 of an organization's PTO policy."""
    now = now or utc_now()
    return PtoPolicy(
        id=uuid.uuid4(),
        funeral_home_id=funeral_home_id,
        business_key=pto_business_key(funeral_home_id),
        version=1,
        valid_from=now,
        is_current=True,
        settings=settings or default_pto_settings(),
        created_by=created_by,
        created_at=now,
        notes=notes,
    )


def create_default_training_policy(
    funeral_home_id: uuid.UUID,
    created_by: uuid.UUID,
    settings: TrainingPolicySettings | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> TrainingPolicy:
    """Version 1 of an organization's training policy."""
    now = now or utc_now()
    return TrainingPolicy(
        id=uuid.uuid4(),
        funeral_home_id=funeral_home_id,
        business_key=training_business_key(funeral_home_id),
        version=1,
        valid_from=now,
        is_current=True,
        settings=settings or default_training_settings(),
        created_by=created_by,
        created_at=now,
        notes=notes,
    )


# ---------------------------------------------------------------------------
# SCD2 transitions
# ---------------------------------------------------------------------------


def supersede_pto_policy(
    current: PtoPolicy,
    settings: PtoPolicySettings,
    created_by: uuid.UUID,
    notes: str | None = None,
    now: datetime | None = None,
) -> tuple[PtoPolicy, PtoPolicy]:
    """Return ``(end-dated current version, new current version)``."""
    now = now or utc_now()
    superseded = current.model_copy(update={"is_current": False, "valid_to": now})
    successor = current.model_copy(
        update={
            "id": uuid.uuid4(),
            "version": current.version + 1,
            "valid_from": now,
            "valid_to": None,
            "is_current": True,
            "settings": settings,
            "created_by": created_by,
            "created_at": now,
            "notes": notes,
        }
    )
    return superseded, successor


def supersede_training_policy(
    current: TrainingPolicy,
    settings: TrainingPolicySettings,
    created_by: uuid.UUID,
    notes: str | None = None,
    now: datetime | None = None,
) -> tuple[TrainingPolicy, TrainingPolicy]:
    """Return ``(end-dated current version, new current version)``."""
    now = now or utc_now()
    superseded = current.model_copy(update={"is_current": False, "valid_to": now})
    successor = current.model_copy(
        update={
            "id": uuid.uuid4(),
            "version": current.version + 1,
            "valid_from": now,
            "valid_to": None,
            "is_current": True,
            "settings": settings,
            "created_by": created_by,
            "created_at": now,
            "notes": notes,
        }
    )
    return superseded, successor


def with_blackout_date(settings: PtoPolicySettings, blackout: BlackoutDate) -> PtoPolicySettings:
    return settings.model_copy(update={"blackout_dates": (*settings.blackout_dates, blackout)})


def without_blackout_date(settings: PtoPolicySettings, name: str) -> PtoPolicySettings:
    """Drop every blackout entry called ``name``. Raises ``NotFoundError`` if there is none."""
    remaining = tuple(b for b in settings.blackout_dates if b.name != name)
    if len(remaining) == len(settings.blackout_dates):
        raise NotFoundError(f"Blackout date '{name}' not found")
    return settings.model_copy(update={"blackout_dates": remaining})


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_pto_policy(settings: PtoPolicySettings) -> list[str]:
    """Return every rule the settings break; an empty list means valid."""
    errors: list[str] = []
    if settings.min_advance_notice_days < 0:
        errors.append("min_advance_notice_days must be non-negative")
    if settings.min_advance_notice_holidays_days < 0:
        errors.append("min_advance_notice_holidays_days must be non-negative")
    if settings.annual_pto_days_per_employee < 0:
        errors.append("annual_pto_days_per_employee must be non-negative")
    if settings.max_concurrent_employees_on_pto < 1:
        errors.append("max_concurrent_employees_on_pto must be at least 1")
    if settings.max_consecutive_pto_days < 1:
        errors.append("max_consecutive_pto_days must be at least 1")
    if settings.premium_multiplier < 1:
        errors.append("premium_multiplier must be at least 1.0")
    if settings.min_advance_notice_holidays_days < settings.min_advance_notice_days:
        errors.append("min_advance_notice_holidays_days must be greater than or equal to min_advance_notice_days")

    for role, role_policy in settings.role_policies.items():
        if role_policy.max_concurrent_employees < 1:
            errors.append(f"max_concurrent_employees must be at least 1 for role: {role}")

    blackouts = settings.blackout_dates
    for i, first in enumerate(blackouts):
        for second in blackouts[i + 1 :]:
            if inclusive_overlaps(first.start_date, first.end_date, second.start_date, second.end_date):
                errors.append(f"Blackout dates '{first.name}' and '{second.name}' overlap")
    return errors


def validate_training_policy(settings: TrainingPolicySettings) -> list[str]:
    """Return every rule the settings break; an empty list means valid."""
    errors: list[str] = []
    if settings.backfill_premium_multiplier < 1:
        errors.append("backfill_premium_multiplier must be at least 1.0")
    if settings.default_renewal_notice_days < 0:
        errors.append("default_renewal_notice_days must be non-negative")
    if settings.approval_required_above_cost < 0:
        errors.append("approval_required_above_cost must be non-negative")

    for role, requirement in settings.role_requirements.items():
        if requirement.annual_training_hours_budget < 0:
            errors.append(f"annual_training_hours_budget must be non-negative for role: {role}")
        if requirement.annual_training_budget < 0:
            errors.append(f"annual_training_budget must be non-negative for role: {role}")
        if requirement.max_training_days_per_year < 0:
            errors.append(f"max_training_days_per_year must be non-negative for role: {role}")
    return errors


def _raise_if_invalid(errors: list[str]) -> None:
    if errors:
        raise AppError("; ".join(errors), status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


# ---------------------------------------------------------------------------
# PTO policy authoring
# ---------------------------------------------------------------------------


async def create_pto_policy(port: PtoManagementPort, auth: AuthContext, payload: CreatePtoPolicyPayload) -> PtoPolicy:
    """Create version 1 of the organization's PTO policy."""
    if await port.get_pto_policy_for_funeral_home(auth.funeral_home_id) is not None:
        raise AppError("A PTO policy already exists for this funeral home", status_code=status.HTTP_409_CONFLICT)

    settings = payload.settings or default_pto_settings()
    _raise_if_invalid(validate_pto_policy(settings))

    policy = create_default_pto_policy(auth.funeral_home_id, auth.user_id, settings=settings, notes=payload.notes)
    created = await port.create_pto_policy(policy, auth.user_id)
    logger.info("Created PTO policy v%d for funeral home %s", created.version, auth.funeral_home_id)
    return created


async def _supersede_pto_policy(
    port: PtoManagementPort,
    auth: AuthContext,
    current: PtoPolicy,
    settings: PtoPolicySettings,
    notes: str | None,
) -> PtoPolicy:
    _raise_if_invalid(validate_pto_policy(settings))
    superseded, successor = supersede_pto_policy(current, settings, auth.user_id, notes=notes)
    updated = await port.update_pto_policy(superseded, successor, auth.user_id)
    logger.info(
        "Superseded PTO policy v%d with v%d for funeral home %s",
        superseded.version,
        updated.version,
        auth.funeral_home_id,
    )
    return updated


async def update_pto_policy(port: PtoManagementPort, auth: AuthContext, payload: UpdatePtoPolicyPayload) -> PtoPolicy:
    """Supersede the current PTO policy with the given settings merged in."""
    current = await port.get_pto_policy_for_funeral_home(auth.funeral_home_id)
    if current is None:
        raise NotFoundError("No PTO policy found for this funeral home")
    settings = _merge_settings(current.settings, payload.settings)
    return await _supersede_pto_policy(port, auth, current, settings, payload.notes)


async def add_pto_blackout_date(port: PtoManagementPort, auth: AuthContext, blackout: BlackoutDate) -> PtoPolicy:
    current = await port.get_pto_policy_for_funeral_home(auth.funeral_home_id)
    if current is None:
        raise NotFoundError("No PTO policy found for this funeral home")
    settings = with_blackout_date(current.settings, blackout)
    return await _supersede_pto_policy(port, auth, current, settings, f"Added blackout date '{blackout.name}'")


async def remove_pto_blackout_date(port: PtoManagementPort, auth: AuthContext, name: str) -> PtoPolicy:
    current = await port.get_pto_policy_for_funeral_home(auth.funeral_home_id)
    if current is None:
        raise NotFoundError("No PTO policy found for this funeral home")
    settings = without_blackout_date(current.settings, name)
    return await _supersede_pto_policy(port, auth, current, settings, f"Removed blackout date '{name}'")


async def get_current_pto_policy(port: PtoManagementPort, funeral_home_id: uuid.UUID) -> PtoPolicy:
    policy = await port.get_pto_policy_for_funeral_home(funeral_home_id)
    if policy is None:
        raise NotFoundError("No PTO policy found for this funeral home")
    return policy


async def get_pto_policy_history(port: PtoManagementPort, funeral_home_id: uuid.UUID) -> PtoPolicyHistoryResponse:
    """All PTO policy versions, newest first."""
    items = await port.get_pto_policy_history(funeral_home_id)
    return PtoPolicyHistoryResponse(items=items, total=len(items))


# ---------------------------------------------------------------------------
# Training policy authoring
# ---------------------------------------------------------------------------


async def create_training_policy(
    port: TrainingManagementPort,
    auth: AuthContext,
    payload: CreateTrainingPolicyPayload,
) -> TrainingPolicy:
    """Create version 1 of the organization's training policy."""
    if await port.get_training_policy_for_funeral_home(auth.funeral_home_id) is not None:
        raise AppError("A training policy already exists for this funeral home", status_code=status.HTTP_409_CONFLICT)

    settings = payload.settings or default_training_settings()
    _raise_if_invalid(validate_training_policy(settings))

    policy = create_default_training_policy(auth.funeral_home_id, auth.user_id, settings=settings, notes=payload.notes)
    created = await port.create_training_policy(policy, auth.user_id)
    logger.info("Created training policy v%d for funeral home %s", created.version, auth.funeral_home_id)
    return created


async def update_training_policy(
    port: TrainingManagementPort,
    auth: AuthContext,
    payload: UpdateTrainingPolicyPayload,
) -> TrainingPolicy:
    """Supersede the current training policy with the given settings merged in."""
    current = await port.get_training_policy_for_funeral_home(auth.funeral_home_id)
    if current is None:
        raise NotFoundError("No training policy found for this funeral home")

    settings = _merge_settings(current.settings, payload.settings)
    _raise_if_invalid(validate_training_policy(settings))

    superseded, successor = supersede_training_policy(current, settings, auth.user_id, notes=payload.notes)
    updated = await port.update_training_policy(superseded, successor, auth.user_id)
    logger.info(
        "Superseded training policy v%d with v%d for funeral home %s",
        superseded.version,
        updated.version,
        auth.funeral_home_id,
    )
    return updated


async def get_current_training_policy(port: TrainingManagementPort, funeral_home_id: uuid.UUID) -> TrainingPolicy:
    policy = await port.get_training_policy_for_funeral_home(funeral_home_id)
    if policy is None:
        raise NotFoundError("No training policy found for this funeral home")
    return policy


async def get_training_policy_history(
    port: TrainingManagementPort,
    funeral_home_id: uuid.UUID,
) -> TrainingPolicyHistoryResponse:
    """All training policy versions, newest first."""
    items = await port.get_training_policy_history(funeral_home_id)
    return TrainingPolicyHistoryResponse(items=items, total=len(items))
