"""Business rules and the plugins that run them."""

from recordplug.business.leave import (
    LeaveBalance,
    LeaveLogic,
    LeaveOutcome,
    LeaveRequest,
    LeaveStatus,
)

__all__ = [
    "LeaveBalance",
    "LeaveLogic",
    "LeaveOutcome",
    "LeaveRequest",
    "LeaveStatus",
]
