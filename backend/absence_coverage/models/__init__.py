from sqlmodel import SQLModel

from absence_coverage.models.audit import AuditLog
from absence_coverage.models.backfill_assignment import BackfillAssignmentModel
from absence_coverage.models.base import TimestampMixin, UUIDBase
from absence_coverage.models.enums import (
    AbsenceType,
    AuditAction,
    AuditEntityType,
    BackfillStatus,
    PremiumType,
    PtoRequestStatus,
    PtoType,
    TrainingStatus,
    TrainingType,
)
from absence_coverage.models.policy import PtoPolicyModel, TrainingPolicyModel
from absence_coverage.models.pto_request import PtoRequestModel
from absence_coverage.models.training_record import TrainingRecordModel

__all__ = [
    "AbsenceType",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "BackfillAssignmentModel",
    "BackfillStatus",
    "PremiumType",
    "PtoPolicyModel",
    "PtoRequestModel",
    "PtoRequestStatus",
    "PtoType",
    "SQLModel",
    "TimestampMixin",
    "TrainingPolicyModel",
    "TrainingRecordModel",
    "TrainingStatus",
    "TrainingType",
    "UUIDBase",
]
