# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from absence_coverage.models.enums import CertificationRenewalPeriod
from absence_coverage.schemas.common import DomainModel

# ---------------------------------------------------------------------------
# PTO policy settings
# ---------------------------------------------------------------------------


class BlackoutDate(DomainModel):
    """Named interval during which PTO cannot be taken."""

    name: str = Field(min_length=1)
    description: str | None = None
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _validate_range(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must not precede start_date"
            raise ValueError(msg)
        return self


class RolePtoPolicy(DomainModel):
    """PTO rules that override the global settings for one role."""

    role: str
    requires_director_approval: bool = False
    requires_backfill: bool = False
    max_concurrent_employees: int = 1


class PtoPolicySettings(DomainModel):
    """Rule values of a PTO policy version.

    Range checks live in ``validate_pto_policy`` so that authoring flows can
    report every problem at once instead of failing on the first field.
    """

    min_advance_notice_days: int = 14
    min_advance_notice_holidays_days: int = 30
    annual_pto_days_per_employee: int = 20
    max_concurrent_employees_on_pto: int = 2
    max_consecutive_pto_days: int = 10
    role_policies: dict[str, RolePtoPolicy] = {}
    blackout_dates: tuple[BlackoutDate, ...] = ()
    enable_premium_pay_for_backfill: bool = True
    premium_multiplier: float = 1.5


class PtoPolicy(DomainModel):
    """One SCD2 version of an organization's PTO policy."""

    id: uuid.UUID
    funeral_home_id: uuid.UUID
    business_key: str
    version: int
    valid_from: datetime
    valid_to: datetime | None = None
    is_current: bool = True
    settings: PtoPolicySettings
    created_by: uuid.UUID
    created_at: datetime
    notes: str | None = None


# ---------------------------------------------------------------------------
# Training policy settings
# ---------------------------------------------------------------------------


class RequiredCertification(DomainModel):
    """A certification a role must hold, with its renewal cadence."""

    certification_id: str
    certification_name: str
    training_type: str
    renewal_period: CertificationRenewalPeriod
    renewal_days_notice: int = 60
    estimated_hours: float = 0
    estimated_cost: float = 0


class RoleTrainingRequirement(DomainModel):
    """Annual training allowance and required certifications for one role."""

    role: str
    required_certifications: tuple[RequiredCertification, ...] = ()
    annual_training_hours_budget: float
    annual_training_budget: float
    requires_director_approval_for_training: bool = False
    max_training_days_per_year: int = 10


class TrainingPolicySettings(DomainModel):
    """Rule values of a training policy version."""

    role_requirements: dict[str, RoleTrainingRequirement] = {}
    enable_training_backfill: bool = True
    backfill_premium_multiplier: float = 1.25
    default_renewal_notice_days: int = 60
    approval_required_above_cost: float = 1000.0


class TrainingPolicy(DomainModel):
    """One SCD2 version of an organization's training policy."""

    id: uuid.UUID
    funeral_home_id: uuid.UUID
    business_key: str
    version: int
    valid_from: datetime
    valid_to: datetime | None = None
    is_current: bool = True
    settings: TrainingPolicySettings
    created_by: uuid.UUID
    created_at: datetime
    notes: str | None = None


# ---------------------------------------------------------------------------
# Authoring payloads
# ---------------------------------------------------------------------------


class CreatePtoPolicyPayload(BaseModel):
    """Request body for creating the first PTO policy version. Omitted settings use defaults."""

    settings: PtoPolicySettings | None = None
    notes: str | None = None


class PtoPolicySettingsUpdate(BaseModel):
    """Partial PTO settings; only the fields that are set replace current values."""

    min_advance_notice_days: int | None = None
    min_advance_notice_holidays_days: int | None = None
    annual_pto_days_per_employee: int | None = None
    max_concurrent_employees_on_pto: int | None = None
    max_consecutive_pto_days: int | None = None
    role_policies: dict[str, RolePtoPolicy] | None = None
    blackout_dates: list[BlackoutDate] | None = None
    enable_premium_pay_for_backfill: bool | None = None
    premium_multiplier: float | None = None


class UpdatePtoPolicyPayload(BaseModel):
    """Request body for superseding the current PTO policy version."""

    settings: PtoPolicySettingsUpdate
    notes: str | None = None


class CreateTrainingPolicyPayload(BaseModel):
    """Request body for creating the first training policy version."""

    settings: TrainingPolicySettings | None = None
    notes: str | None = None


class TrainingPolicySettingsUpdate(BaseModel):
    """Partial training settings; only the fields that are set replace current values."""

    role_requirements: dict[str, RoleTrainingRequirement] | None = None
    enable_training_backfill: bool | None = None
    backfill_premium_multiplier: float | None = None
    default_renewal_notice_days: int | None = None
    approval_required_above_cost: float | None = None


class UpdateTrainingPolicyPayload(BaseModel):
    """Request body for superseding the current training policy version."""

    settings: TrainingPolicySettingsUpdate
    notes: str | None = None


class PtoPolicyHistoryResponse(BaseModel):
    """All PTO policy versions of an organization, newest first."""

    items: list[PtoPolicy]
    total: int


class TrainingPolicyHistoryResponse(BaseModel):
    """All training policy versions of an organization, newest first."""

    items: list[TrainingPolicy]
    total: int
