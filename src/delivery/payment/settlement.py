"""ScheduledSettlement aggregate: deferred completion of simulated payments.

Demo payment methods settle a few seconds after submission. Instead of
sleeping in the request thread, submission persists a settlement due at a
future time; the worker fires due settlements, and cancelling the order
first cancels them.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from delivery.domain import delivery


class SettlementStatus(Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@delivery.aggregate
class ScheduledSettlement:
    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    due_at = DateTime(required=True)
    status = String(choices=SettlementStatus, default=SettlementStatus.SCHEDULED.value)
    note = String(max_length=500)
    resolved_at = DateTime()
    created_at = DateTime()

    @classmethod
    def schedule(cls, payment_id, order_id, due_at):
        return cls(
            payment_id=payment_id,
            order_id=order_id,
            due_at=due_at,
            status=SettlementStatus.SCHEDULED.value,
            created_at=datetime.now(UTC),
        )

    def _resolve(self, status, note=None):
        if self.status != SettlementStatus.SCHEDULED.value:
            raise ValidationError({"status": [f"Settlement already {self.status}"]})
        self.status = status.value
        self.note = note
        self.resolved_at = datetime.now(UTC)

    def complete(self, note=None):
        self._resolve(SettlementStatus.COMPLETED, note)

    def cancel(self, note):
        self._resolve(SettlementStatus.CANCELLED, note)

    def is_due(self, as_of) -> bool:
        if self.status != SettlementStatus.SCHEDULED.value:
            return False
        due = self.due_at
        # Normalize timezone awareness for comparison
        if due.tzinfo is None and as_of.tzinfo is not None:
            due = due.replace(tzinfo=as_of.tzinfo)
        elif due.tzinfo is not None and as_of.tzinfo is None:
            due = due.replace(tzinfo=None)
        return due <= as_of


@delivery.command(part_of="ScheduledSettlement")
class ScheduleSettlement:
    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    due_at = DateTime(required=True)


@delivery.command(part_of="ScheduledSettlement")
class ResolveSettlement:
    settlement_id = Identifier(required=True)
    outcome = String(choices=SettlementStatus, required=True)
    note = String(max_length=500)


@delivery.command_handler(part_of=ScheduledSettlement)
class SettlementCommandHandler:
    @handle(ScheduleSettlement)
    def schedule_settlement(self, command):
        settlement = ScheduledSettlement.schedule(command.payment_id, command.order_id, command.due_at)
        current_domain.repository_for(ScheduledSettlement).add(settlement)
        return str(settlement.id)

    @handle(ResolveSettlement)
    def resolve_settlement(self, command):
        repo = current_domain.repository_for(ScheduledSettlement)
        settlement = repo.get(command.settlement_id)
        if command.outcome == SettlementStatus.COMPLETED.value:
            settlement.complete(command.note)
        elif command.outcome == SettlementStatus.CANCELLED.value:
            settlement.cancel(command.note)
        else:
            raise ValidationError({"outcome": ["A settlement resolves as completed or cancelled"]})
        repo.add(settlement)


def scheduled_settlements(order_id=None) -> list[ScheduledSettlement]:
    repo = current_domain.repository_for(ScheduledSettlement)
    filters = {"status": SettlementStatus.SCHEDULED.value}
    if order_id is not None:
        filters["order_id"] = order_id
    return repo._dao.query.filter(**filters).order_by("created_at").limit(None).all().items
