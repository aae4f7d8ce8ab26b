"""
Reconciliation of dispatched vs received stock.

Non-serialized lines compare quantities. Serialized lines compare serial
number sets: a received serial that was never sent is a SERIAL_MISMATCH and
outranks every other outcome, because it means the data cannot be trusted
without a manual check.

All functions are pure; reconciling the same data twice gives the same result.
"""

import structlog

from models.movement import Movement, MovementLine
from models.reconciliation import (
    CompleteStatus,
    LineReconciliation,
    LineStatus,
    MovementReconciliation,
    ReconciliationAnomaly,
)

logger = structlog.get_logger(__name__)


def reconcile_line(line: MovementLine) -> LineReconciliation:
    """
    Compute the delivery status of one line.

    Serialized lines without any sent serials fall back to the quantity
    comparison.
    """
    if line.serialized and line.serial_numbers_sent:
        return _reconcile_serials(line)
    return _reconcile_quantity(line)


def _reconcile_quantity(line: MovementLine) -> LineReconciliation:
    sent = line.quantity_sent
    received = line.quantity_received

    if received is None:
        status = LineStatus.NOT_RECEIVED
    elif received == sent:
        status = LineStatus.FULL
    elif received == 0:
        status = LineStatus.NOT_RECEIVED
    elif received < sent:
        status = LineStatus.PARTIAL
    else:
        status = LineStatus.OVER_RECEIVED

    return LineReconciliation(
        product_id=line.product_id,
        status=status,
        expected=sent,
        received=received or 0,
    )


def _reconcile_serials(line: MovementLine) -> LineReconciliation:
    sent = line.sent_serial_values
    received = line.received_serial_values
    sent_set = set(sent)
    received_set = set(received)

    # Keep sheet order in the reported lists
    unexpected = tuple(dict.fromkeys(s for s in received if s not in sent_set))
    missing = tuple(s for s in sent if s not in received_set)
    matched = sent_set & received_set

    if unexpected:
        status = LineStatus.SERIAL_MISMATCH
    elif not received_set:
        status = LineStatus.NOT_RECEIVED
    elif matched == sent_set:
        status = LineStatus.FULL
    else:
        status = LineStatus.PARTIAL

    return LineReconciliation(
        product_id=line.product_id,
        status=status,
        expected=float(len(sent_set)),
        received=float(len(received_set)),
        missing_serials=missing,
        unexpected_serials=unexpected,
    )


def reconcile_movement(movement: Movement) -> MovementReconciliation:
    """
    Reconcile every line and derive the movement's complete status.

    - FULL only if every line is FULL
    - REVIEW_REQUIRED if any line is SERIAL_MISMATCH or OVER_RECEIVED
    - NOT_RECEIVED if nothing has arrived on any line
    - PARTIAL otherwise
    """
    lines = [reconcile_line(line) for line in movement.lines]
    anomalies = [_anomaly(result) for result in lines if result.is_anomaly]

    statuses = {result.status for result in lines}
    if anomalies:
        complete_status = CompleteStatus.REVIEW_REQUIRED
    elif lines and statuses == {LineStatus.FULL}:
        complete_status = CompleteStatus.FULL
    elif not lines or statuses == {LineStatus.NOT_RECEIVED}:
        complete_status = CompleteStatus.NOT_RECEIVED
    else:
        complete_status = CompleteStatus.PARTIAL

    for anomaly in anomalies:
        logger.warning(
            "reconciliation_anomaly",
            movement_id=movement.id,
            product_id=anomaly.product_id,
            status=anomaly.status.value,
            unexpected_serials=list(anomaly.unexpected_serials)
        )

    logger.info(
        "movement_reconciled",
        movement_id=movement.id,
        complete_status=complete_status.value,
        lines=len(lines),
        anomalies=len(anomalies)
    )

    return MovementReconciliation(
        movement_id=movement.id,
        complete_status=complete_status,
        lines=lines,
        anomalies=anomalies,
    )


def _anomaly(result: LineReconciliation) -> ReconciliationAnomaly:
    if result.status == LineStatus.SERIAL_MISMATCH:
        message = (
            f"Received serial numbers not in the dispatched set: "
            f"{', '.join(result.unexpected_serials)}"
        )
    else:
        message = f"Received {result.received:g} but only {result.expected:g} were sent"
    return ReconciliationAnomaly(
        product_id=result.product_id,
        status=result.status,
        message=message,
        unexpected_serials=result.unexpected_serials,
    )
