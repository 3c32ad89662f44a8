"""Settlement task processing: the outbox that follows order placement.

Each placed order carries its side effects as ``SettlementTask`` rows, in the
order they must run: one stock reservation per catalog line, then the
discount usage commit, then the confirmation email. The processor runs the
pending ones in sequence, retrying transient failures up to
``max_task_attempts`` and dead-lettering tasks that keep failing or that can
never succeed (the stock ran out, the discount cap was reached). Outcomes
are recorded on the order; nothing here raises to the caller.
"""

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from inventory.stock import InsufficientStock, StockReservationGate
from notifications.notifier import Notifier
from ordering.checkout.timeouts import bounded, max_task_attempts, step_timeout
from ordering.discount.validator import commit_usage
from ordering.errors import DiscountRejected
from ordering.order.order import Order, SettlementTaskKind
from ordering.order.snapshot import order_snapshot

logger = structlog.get_logger(__name__)

PERMANENT_FAILURES = (InsufficientStock, DiscountRejected)


class NotificationNotSent(Exception):
    """The notifier reported that the confirmation was not delivered."""


class SettlementTaskProcessor:
    def __init__(self, gate=None, notifier=None, timeout=None, max_attempts=None):
        self.gate = gate or StockReservationGate()
        self.notifier = notifier or Notifier()
        self._timeout = timeout
        self._max_attempts = max_attempts

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else step_timeout()

    @property
    def max_attempts(self) -> int:
        return self._max_attempts or max_task_attempts()

    def process(self, order: Order) -> Order:
        """Run every pending task of an order in sequence and persist the outcome of each."""
        repo = current_domain.repository_for(Order)

        for task in order.pending_tasks():
            while task.is_pending:
                try:
                    self._run(order, task)
                except PERMANENT_FAILURES as exc:
                    order.fail_task(task.id, exc, self.max_attempts, permanent=True)
                    self._log_dead_letter(order, task, exc)
                except Exception as exc:
                    if order.fail_task(task.id, exc, self.max_attempts):
                        self._log_dead_letter(order, task, exc)
                    else:
                        logger.warning(
                            "Settlement task failed, retrying",
                            order_id=str(order.id),
                            task=task.kind,
                            attempt=task.attempts,
                            error=str(exc),
                        )
                else:
                    order.complete_task(task.id)
                    logger.info("Settlement task completed", order_id=str(order.id), task=task.kind)

                try:
                    repo.add(order)
                except ExpectedVersionError:
                    logger.info("Settlement tasks advanced by another worker", order_id=str(order.id))
                    return repo.get(order.id)

        return order

    def process_pending(self) -> int:
        """Sweep every order that still has pending settlement tasks. Returns how many were processed."""
        repo = current_domain.repository_for(Order)
        open_orders = repo._dao.query.filter(settlement_pending=True).all().items

        for record in open_orders:
            self.process(repo.get(record.id))

        if open_orders:
            logger.info("Pending settlement tasks processed", orders=len(open_orders))
        return len(open_orders)

    def _run(self, order: Order, task) -> None:
        data = task.data
        kind = SettlementTaskKind(task.kind)

        if kind == SettlementTaskKind.RESERVE_STOCK:
            bounded(
                "reserve_stock",
                self.gate.reserve,
                data["product_id"],
                data["quantity"],
                data["reservation_key"],
                timeout=self.timeout,
            )
        elif kind == SettlementTaskKind.COMMIT_DISCOUNT_USAGE:
            commit_usage(data["discount_id"], order.id)
        elif kind == SettlementTaskKind.SEND_CONFIRMATION:
            sent = bounded(
                "send_confirmation",
                self.notifier.send_confirmation,
                order_snapshot(order),
                timeout=self.timeout,
            )
            if not sent:
                raise NotificationNotSent(f"Confirmation email for order {order.id} was not sent")

    def _log_dead_letter(self, order: Order, task, exc) -> None:
        logger.error(
            "Settlement task dead-lettered",
            order_id=str(order.id),
            task=task.kind,
            attempts=task.attempts,
            error=str(exc),
        )
