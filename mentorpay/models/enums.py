from __future__ import annotations

from enum import Enum


class ApplicantKind(str, Enum):
    ENTREPRENEUR = "entrepreneur"
    MENTOR = "mentor"
    COACH = "coach"
    INVESTOR = "investor"


class ApplicationStatus(str, Enum):
    SUBMITTED = "submitted"
    PENDING = "pending"
    PRE_APPROVED = "pre-approved"
    APPROVED = "approved"
    REJECTED = "rejected"
    TERMINATED = "terminated"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    PAYMENT_FAILED = "payment_failed"
    CANCELLED = "cancelled"


class ServiceType(str, Enum):
    INTRO = "intro"
    SESSION = "session"
    MONTHLY = "monthly"


class PurchaseStatus(str, Enum):
    COMPLETED = "completed"


class DashboardAccess(str, Enum):
    FULL = "full"
    VIEW_ONLY = "view_only"
    NONE = "none"
