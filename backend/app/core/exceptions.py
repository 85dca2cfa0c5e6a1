"""
Domain error taxonomy.

Services raise these; they carry no transport detail. The API layer maps each
error_code to an HTTP status in one place (app.api.errors).
"""

from typing import Any, Dict, Optional


class MembershipError(Exception):
    """Base class for every outcome the core reports to its caller."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class InvalidStartDate(MembershipError):
    def __init__(self, start_date, as_of):
        super().__init__(
            f"Start date {start_date.isoformat()} is before {as_of.isoformat()}",
            details={"start_date": start_date.isoformat(), "as_of": as_of.isoformat()},
        )


class InvalidAmount(MembershipError):
    def __init__(self, amount: int):
        super().__init__(
            f"Point amount must be a positive integer, got {amount}",
            details={"amount": amount},
        )


class InsufficientBalance(MembershipError):
    def __init__(self, subject_id: int, requested: int, balance: int):
        super().__init__(
            f"Insufficient balance. Requested: {requested}, Available: {balance}",
            details={"subject_id": subject_id, "requested": requested, "balance": balance},
        )


class RewardNotFound(MembershipError):
    def __init__(self, reward_id: int):
        super().__init__(f"Reward {reward_id} not found", details={"reward_id": reward_id})


class PlanNotFound(MembershipError):
    def __init__(self, plan_id: int):
        super().__init__(f"Plan {plan_id} not found", details={"plan_id": plan_id})


class SubscriptionNotFound(MembershipError):
    def __init__(self, subscription_id: int):
        super().__init__(
            f"Subscription {subscription_id} not found",
            details={"subscription_id": subscription_id},
        )


class ClassNotFound(MembershipError):
    def __init__(self, class_id: int):
        super().__init__(f"Class {class_id} not found", details={"class_id": class_id})


class BookingNotFound(MembershipError):
    def __init__(self, booking_id: int):
        super().__init__(f"Booking {booking_id} not found", details={"booking_id": booking_id})


class DuplicateBooking(MembershipError):
    def __init__(self, subject_id: int, class_id: int, occurrence_time):
        super().__init__(
            "You are already registered for this class occurrence",
            details={
                "subject_id": subject_id,
                "class_id": class_id,
                "occurrence_time": occurrence_time.isoformat(),
            },
        )


class InvalidTransition(MembershipError):
    def __init__(self, booking_id: int, current: str, target: str):
        super().__init__(
            f"Booking {booking_id} cannot move from {current} to {target}",
            details={"booking_id": booking_id, "current": current, "target": target},
        )


class Unavailable(MembershipError):
    """The backing store failed; the operation was aborted with no state change."""

    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message)
