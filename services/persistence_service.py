"""
Persistence sink for movements and imported entities.

The sink is the source of truth for what was committed. Every call is
all-or-nothing: a movement and its lines go through one database function,
and an entity batch is a single multi-row insert.
"""

from typing import Protocol
import httpx
from postgrest.exceptions import APIError
import structlog

from config import ServiceContext, get_supabase_client
from models.movement import Movement
from exceptions import DatabaseError, TransientSinkError

logger = structlog.get_logger(__name__)


ENTITY_TABLES = {
    "product": "products",
    "warehouse": "warehouses",
    "vehicle": "vehicles",
}

# Gateway responses that mean "try again later"
UNAVAILABLE_CODES = frozenset({"502", "503", "504"})


class MovementSink(Protocol):
    """Persistence endpoint used by the batch submitter."""

    def create_movement(self, movement: Movement) -> Movement: ...

    def update_movement(self, movement: Movement) -> Movement: ...

    def create_entities_batch(self, entity_type: str, payloads: list[dict]) -> list[dict]: ...


class SupabaseMovementSink:
    """
    Sink backed by Supabase.

    Movements are written through the create_movement / update_movement
    database functions so header, lines and serial numbers commit in one
    transaction.
    """

    def __init__(self, context: ServiceContext):
        self.db = get_supabase_client(context)

    def create_movement(self, movement: Movement) -> Movement:
        logger.info(
            "creating_movement",
            movement_type=movement.movement_type.value,
            lines=len(movement.lines)
        )
        row = self._call("create_movement", {"payload": movement.to_payload()})
        created = Movement.model_validate(row)
        logger.info("movement_created", movement_id=created.id)
        return created

    def update_movement(self, movement: Movement) -> Movement:
        logger.info("updating_movement", movement_id=movement.id, status=movement.status.value)
        row = self._call("update_movement", {"payload": movement.to_payload()})
        return Movement.model_validate(row)

    def create_entities_batch(self, entity_type: str, payloads: list[dict]) -> list[dict]:
        table = ENTITY_TABLES[entity_type]
        logger.info("creating_entities", table=table, count=len(payloads))
        try:
            result = self.db.table(table).insert(payloads).execute()
        except (httpx.TransportError, ConnectionError, TimeoutError) as e:
            logger.warning("entity_insert_unreachable", table=table, error=str(e))
            raise TransientSinkError(str(e), details={"table": table})
        except APIError as e:
            raise _api_error("insert", e, {"table": table})
        except Exception as e:
            logger.error("entity_insert_failed", table=table, error=str(e))
            raise DatabaseError("insert", str(e), details={"table": table})

        logger.info("entities_created", table=table, count=len(result.data))
        return result.data

    def _call(self, function: str, params: dict) -> dict:
        try:
            result = self.db.rpc(function, params).execute()
        except (httpx.TransportError, ConnectionError, TimeoutError) as e:
            logger.warning("movement_rpc_unreachable", function=function, error=str(e))
            raise TransientSinkError(str(e), details={"function": function})
        except APIError as e:
            raise _api_error("rpc", e, {"function": function})
        except Exception as e:
            logger.error("movement_rpc_failed", function=function, error=str(e))
            raise DatabaseError("rpc", str(e), details={"function": function})

        data = result.data
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            raise DatabaseError("rpc", "empty response", details={"function": function})
        return data


def _api_error(operation: str, error: APIError, details: dict) -> Exception:
    """Map a PostgREST error to a transient or permanent sink error."""
    code = str(error.code) if error.code is not None else ""
    if code in UNAVAILABLE_CODES:
        logger.warning("sink_unavailable", operation=operation, code=code, **details)
        return TransientSinkError(error.message or f"HTTP {code}", details={**details, "code": code})

    logger.error("sink_rejected", operation=operation, code=code, error=error.message, **details)
    return DatabaseError(operation, error.message or str(error), details={**details, "code": code})
