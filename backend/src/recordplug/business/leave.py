"""Leave management business logic.

When a leave request is approved, the requester's balance for that leave
type is reduced by the number of days requested.
"""

import logging
from enum import Enum, IntEnum

from recordplug.core.errors import BalanceIntegrityError, InvalidPluginExecutionError
from recordplug.core.names import EntityNames
from recordplug.core.types import (
    ColumnSet,
    ConditionExpression,
    ConditionOperator,
    Entity,
    EntityReference,
    FilterExpression,
    OptionSetValue,
    QueryExpression,
)
from recordplug.plugins.session import OrganizationServiceContext
from recordplug.plugins.types import OrganizationService

logger = logging.getLogger(__name__)


class LeaveStatus(IntEnum):
    PENDING = 100000000
    APPROVED = 100000001
    REJECTED = 100000002


class LeaveRequest(Entity):
    LOGICAL_NAME = EntityNames.new_leaverequests

    @property
    def leave_status(self) -> LeaveStatus | int | None:
        """Status choice; values LeaveStatus does not list come back as plain ints."""
        option = self.get("new_leavestatus")
        if option is None:
            return None
        try:
            return LeaveStatus(option.value)
        except ValueError:
            return option.value

    @property
    def leave_type(self) -> OptionSetValue | None:
        return self.get("new_leavetype")

    @property
    def number_of_days(self) -> float:
        return self.get("new_numberofdays") or 0

    @property
    def created_by(self) -> EntityReference | None:
        return self.get("createdby")


class LeaveBalance(Entity):
    LOGICAL_NAME = EntityNames.new_leavebalance

    @property
    def balance(self) -> float:
        return self.get("new_leavebalance") or 0

    @balance.setter
    def balance(self, value: float) -> None:
        self["new_leavebalance"] = value


class LeaveOutcome(Enum):
    """What update_approved_leave did."""

    APPLIED = "applied"
    NOT_APPROVED = "not_approved"
    BALANCE_NOT_FOUND = "balance_not_found"
    BALANCE_AMBIGUOUS = "balance_ambiguous"


class LeaveLogic:
    """Adjusts leave balances for approved leave requests.

    Args:
        service: Record service acting as the plugin step's user
        session: Session used to write the balance update
        strict: Raise BalanceIntegrityError when the balance lookup does not
            return exactly one record, instead of skipping the update
    """

    def __init__(
        self,
        service: OrganizationService,
        session: OrganizationServiceContext,
        strict: bool = False,
    ):
        self.service = service
        self.session = session
        self.strict = strict

    def update_approved_leave(self, target: Entity) -> LeaveOutcome:
        """Deduct an approved request's days from the requester's balance.

        The target of an Update only carries changed columns, so the full
        request is read back first.

        Returns:
            The LeaveOutcome describing what happened

        Raises:
            BalanceIntegrityError: In strict mode, if zero or several balance
                records match the requester and leave type
        """
        request = self.service.retrieve(
            EntityNames.new_leaverequests, target.id, ColumnSet.all()
        ).to_entity(LeaveRequest)

        if request.leave_status != LeaveStatus.APPROVED:
            return LeaveOutcome.NOT_APPROVED
        if request.created_by is None or request.leave_type is None:
            raise InvalidPluginExecutionError(
                f"Leave request {request.id} has no requester or leave type"
            )

        query = QueryExpression(
            entity_name=EntityNames.new_leavebalance,
            column_set=ColumnSet.of("new_leavebalance"),
            criteria=FilterExpression(
                conditions=(
                    ConditionExpression(
                        "new_employeeid", ConditionOperator.EQUAL, request.created_by.id
                    ),
                    ConditionExpression(
                        "new_leavetype", ConditionOperator.EQUAL, request.leave_type.value
                    ),
                )
            ),
        )
        results = self.service.retrieve_multiple(query)

        if len(results) != 1:
            outcome = (
                LeaveOutcome.BALANCE_NOT_FOUND
                if len(results) == 0
                else LeaveOutcome.BALANCE_AMBIGUOUS
            )
            message = (
                f"Expected one leave balance for employee {request.created_by.id} "
                f"and leave type {request.leave_type.value}, found {len(results)}"
            )
            if self.strict:
                raise BalanceIntegrityError(message)
            logger.warning("%s; skipping leave request %s", message, request.id)
            return outcome

        balance = results.entities[0].to_entity(LeaveBalance)
        balance.balance = balance.balance - request.number_of_days
        self.session.update_object(balance)
        self.session.save_changes()
        return LeaveOutcome.APPLIED
