from __future__ import annotations

import enum


class PtoType(enum.StrEnum):
    """Kind of paid time off being requested."""

    VACATION = "vacation"
    SICK_LEAVE = "sick_leave"
    BEREAVEMENT = "bereavement"
    UNPAID = "unpaid"
    PERSONAL = "personal"


class PtoRequestStatus(enum.StrEnum):
    """State machine for PTO requests."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class TrainingType(enum.StrEnum):
    """Training subject area."""

    EMBALMING = "embalming"
    FUNERAL_DIRECTING = "funeral_directing"
    RESTORATIVE_ART = "restorative_art"
    CUSTOMER_SERVICE = "customer_service"
    SAFETY = "safety"
    COMPLIANCE = "compliance"
    OTHER = "other"


class TrainingStatus(enum.StrEnum):
    """State machine for training records."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class CertificationRenewalPeriod(enum.StrEnum):
    """How often a required certification must be renewed."""

    ANNUAL = "annual"
    BIENNIAL = "biennial"
    TRIENNIAL = "triennial"
    NEVER = "never"


class BackfillStatus(enum.StrEnum):
    """State machine for backfill assignments."""

    SUGGESTED = "suggested"
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class AbsenceType(enum.StrEnum):
    """Why the covered employee is absent."""

    PTO = "pto"
    TRAINING = "training"
    OTHER = "other"


class PremiumType(enum.StrEnum):
    """Classification of backfill premium pay. Does not change the multiplier."""

    NONE = "none"
    OVERTIME = "overtime"
    WEEKEND = "weekend"
    HOLIDAY = "holiday"
    TRAINING_COVERAGE = "training_coverage"
    EMERGENCY = "emergency"


class ErrorType(enum.StrEnum):
    """Category of a failed workflow result."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    PTO_POLICY = "PTO_POLICY"
    TRAINING_POLICY = "TRAINING_POLICY"
    PTO_REQUEST = "PTO_REQUEST"
    TRAINING_RECORD = "TRAINING_RECORD"
    BACKFILL_ASSIGNMENT = "BACKFILL_ASSIGNMENT"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# Statuses that still occupy the employee's calendar.
ACTIVE_PTO_STATUSES = frozenset({PtoRequestStatus.PENDING, PtoRequestStatus.APPROVED})

# Statuses that hold a backfill employee for the absence window.
BOOKED_BACKFILL_STATUSES = frozenset({BackfillStatus.PENDING_CONFIRMATION, BackfillStatus.CONFIRMED})
