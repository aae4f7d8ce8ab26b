"""
Movement lifecycle: build, dispatch, receive.
"""

from typing import Optional
import structlog

from models.movement import (
    LineReceipt,
    Movement,
    MovementLine,
    MovementStatus,
    MovementType,
    SerialNumber,
    is_valid_movement_status_transition,
)
from models.reconciliation import CompleteStatus, MovementReconciliation
from services.batch_submitter import BatchSubmitter, Submission, SubmissionUnit
from services.catalog_service import EntityCatalog, require_product
from services.persistence_service import MovementSink
from services.reconciliation_service import reconcile_movement
from services.validation_service import validate_movement
from exceptions import (
    InvalidStatusTransitionError,
    MovementValidationError,
)

logger = structlog.get_logger(__name__)


def add_line(lines: list[MovementLine], line: MovementLine) -> list[MovementLine]:
    """
    Add a line, merging it into an existing line for the same product.

    Quantities add up and serial numbers are appended. Returns a new list;
    the input lines are not modified.
    """
    merged: list[MovementLine] = []
    found = False

    for existing in lines:
        if existing.product_id == line.product_id and not found:
            found = True
            merged.append(existing.model_copy(update={
                "quantity_sent": existing.quantity_sent + line.quantity_sent,
                "serialized": existing.serialized or line.serialized,
                "serial_numbers_sent": existing.serial_numbers_sent + line.serial_numbers_sent,
            }))
        else:
            merged.append(existing)

    if not found:
        merged.append(line)

    return merged


class MovementService:
    """
    Movement business logic.

    Validation reads the catalog; persistence goes through the sink via the
    batch submitter so every movement is retried as a whole.
    """

    def __init__(self, catalog: EntityCatalog, submitter: Optional[BatchSubmitter] = None):
        self.catalog = catalog
        self.submitter = submitter or BatchSubmitter()

    # ===================
    # DISPATCH
    # ===================

    def prepare(self, movement: Movement) -> Movement:
        """
        Validate a draft and set its dispatch status.

        Shipments go straight to IN_TRANSIT; transfers wait as PENDING.

        Raises:
            MovementValidationError: With every issue found
            InvalidStatusTransitionError: Movement is not a draft
        """
        issues = validate_movement(movement, self.catalog)
        if issues:
            logger.warning(
                "movement_invalid",
                movement_type=movement.movement_type.value,
                issue_count=len(issues)
            )
            raise MovementValidationError([issue.to_dict() for issue in issues])

        new_status = (
            MovementStatus.IN_TRANSIT
            if movement.movement_type == MovementType.SHIPMENT
            else MovementStatus.PENDING
        )
        if not is_valid_movement_status_transition(movement.status, new_status):
            raise InvalidStatusTransitionError(movement.status.value, new_status.value)

        lines = [
            line.model_copy(update={"serialized": require_product(self.catalog, line.product_id).serialized})
            for line in movement.lines
        ]

        prepared = movement.model_copy(update={"status": new_status, "lines": lines})
        logger.info(
            "movement_prepared",
            movement_type=movement.movement_type.value,
            status=new_status.value,
            lines=len(lines)
        )
        return prepared

    def submit(self, movements: list[Movement], sink: MovementSink) -> Submission:
        """
        Prepare and submit movements, one sink call per movement.

        All movements are validated before the first call, so an invalid
        movement stops the batch before anything is written.
        """
        prepared = [self.prepare(movement) for movement in movements]
        units = [
            SubmissionUnit(
                payload=movement,
                record_count=movement.record_count,
                label=movement.reference,
            )
            for movement in prepared
        ]
        logger.info("movements_submitting", movements=len(units))
        return self.submitter.submit(units, sink.create_movement)

    # ===================
    # RECEIPT
    # ===================

    def record_receipt(
        self,
        movement: Movement,
        receipts: list[LineReceipt],
        sink: MovementSink
    ) -> tuple[Movement, MovementReconciliation]:
        """
        Apply received quantities, reconcile, and persist the result.

        Lines without a receipt are left unreceived. Serialized lines take
        their received quantity from the number of serials counted.

        Returns:
            (updated movement from the sink, reconciliation)

        Raises:
            InvalidStatusTransitionError: Movement was never dispatched
                                          or is already delivered
            SubmissionError: The sink rejected the update or stayed
                             unavailable after retries
        """
        if movement.status in (MovementStatus.DRAFT, MovementStatus.DELIVERED):
            raise InvalidStatusTransitionError(movement.status.value, MovementStatus.DELIVERED.value)

        by_product = {receipt.product_id: receipt for receipt in receipts}
        unknown = [pid for pid in by_product if movement.line_for(pid) is None]
        if unknown:
            logger.warning("receipt_for_unknown_lines", movement_id=movement.id, product_ids=unknown)

        lines = [self._apply_receipt(line, by_product.get(line.product_id)) for line in movement.lines]
        received = movement.model_copy(update={"lines": lines})

        reconciliation = reconcile_movement(received)
        new_status = (
            MovementStatus.DELIVERED
            if reconciliation.complete_status == CompleteStatus.FULL
            else MovementStatus.INCOMPLETE
        )
        if not is_valid_movement_status_transition(movement.status, new_status):
            raise InvalidStatusTransitionError(movement.status.value, new_status.value)

        received = received.model_copy(update={
            "status": new_status,
            "complete_status": reconciliation.complete_status,
        })

        logger.info(
            "receipt_recorded",
            movement_id=movement.id,
            status=new_status.value,
            complete_status=reconciliation.complete_status.value,
            anomalies=len(reconciliation.anomalies)
        )

        unit = SubmissionUnit(payload=received, record_count=received.record_count, label=received.reference)
        updated = self.submitter.submit([unit], sink.update_movement).run()[0]
        return updated, reconciliation

    def _apply_receipt(self, line: MovementLine, receipt: Optional[LineReceipt]) -> MovementLine:
        if receipt is None:
            return line

        if line.serialized and line.serial_numbers_sent:
            # A serial counted twice is one unit
            values = list(dict.fromkeys(receipt.serial_numbers_received))
            serials = [SerialNumber(serial_number=s) for s in values]
            return line.model_copy(update={
                "serial_numbers_received": serials,
                "quantity_received": float(len(serials)),
            })

        return line.model_copy(update={"quantity_received": receipt.quantity_received})
