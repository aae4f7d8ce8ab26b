"""
Entity catalog access for products, warehouses and vehicles.

Read-only. The catalog is owned by the inventory service; this core only
looks entities up by id to validate and enrich movements and imports.
"""

from threading import Lock
from typing import Optional, Protocol
import structlog

from config import ServiceContext, get_supabase_client
from models.product import Product
from models.warehouse import Warehouse
from models.vehicle import Vehicle
from exceptions import (
    DatabaseError,
    ProductNotFoundError,
    VehicleNotFoundError,
    WarehouseNotFoundError,
)

logger = structlog.get_logger(__name__)


class EntityCatalog(Protocol):
    """Lookup interface supplied by the inventory service."""

    def get_product(self, product_id: str) -> Optional[Product]: ...

    def get_warehouse(self, warehouse_id: str) -> Optional[Warehouse]: ...

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]: ...

    def list_products(self) -> list[Product]: ...

    def list_warehouses(self) -> list[Warehouse]: ...

    def list_vehicles(self) -> list[Vehicle]: ...


class SupabaseCatalog:
    """
    Catalog backed by Supabase tables.

    The client is built from the caller's ServiceContext, so every import
    reads with its own credentials.
    """

    def __init__(self, context: ServiceContext):
        self.db = get_supabase_client(context)

    # ===================
    # READ OPERATIONS
    # ===================

    def get_product(self, product_id: str) -> Optional[Product]:
        row = self._get_one("products", product_id)
        return self._row_to_product(row) if row else None

    def get_warehouse(self, warehouse_id: str) -> Optional[Warehouse]:
        row = self._get_one("warehouses", warehouse_id)
        return self._row_to_warehouse(row) if row else None

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        row = self._get_one("vehicles", vehicle_id)
        return self._row_to_vehicle(row) if row else None

    def list_products(self) -> list[Product]:
        return [self._row_to_product(r) for r in self._get_all("products", order="name")]

    def list_warehouses(self) -> list[Warehouse]:
        return [self._row_to_warehouse(r) for r in self._get_all("warehouses", order="name")]

    def list_vehicles(self) -> list[Vehicle]:
        return [self._row_to_vehicle(r) for r in self._get_all("vehicles", order="plate_number")]

    # ===================
    # QUERY HELPERS
    # ===================

    def _get_one(self, table: str, entity_id: str) -> Optional[dict]:
        logger.debug("catalog_lookup", table=table, entity_id=entity_id)
        try:
            result = (
                self.db.table(table)
                .select("*")
                .eq("id", entity_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("catalog_lookup_failed", table=table, entity_id=entity_id, error=str(e))
            raise DatabaseError("select", str(e), details={"table": table})

        return result.data[0] if result.data else None

    def _get_all(self, table: str, order: str) -> list[dict]:
        try:
            result = self.db.table(table).select("*").order(order).execute()
        except Exception as e:
            logger.error("catalog_list_failed", table=table, error=str(e))
            raise DatabaseError("select", str(e), details={"table": table})

        logger.info("catalog_listed", table=table, count=len(result.data))
        return result.data

    def _row_to_product(self, row: dict) -> Product:
        return Product(
            id=str(row["id"]),
            code=row["code"],
            name=row["name"],
            category=row.get("category"),
            barcodes=row.get("barcodes") or [],
            serialized=bool(row.get("serialized", False)),
        )

    def _row_to_warehouse(self, row: dict) -> Warehouse:
        return Warehouse(
            id=str(row["id"]),
            code=row["code"],
            name=row["name"],
            location=row.get("location"),
            emails=row.get("emails") or [],
        )

    def _row_to_vehicle(self, row: dict) -> Vehicle:
        return Vehicle(
            id=str(row["id"]),
            plate_number=row["plate_number"],
            description=row.get("description"),
        )


class CachedCatalog:
    """
    Read-through cache in front of another catalog.

    Safe to share between concurrent imports. Misses are not cached, so an
    entity created after a failed lookup is found on the next call.
    """

    def __init__(self, source: EntityCatalog):
        self._source = source
        self._lock = Lock()
        self._products: dict[str, Product] = {}
        self._warehouses: dict[str, Warehouse] = {}
        self._vehicles: dict[str, Vehicle] = {}

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._cached(self._products, product_id, self._source.get_product)

    def get_warehouse(self, warehouse_id: str) -> Optional[Warehouse]:
        return self._cached(self._warehouses, warehouse_id, self._source.get_warehouse)

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        return self._cached(self._vehicles, vehicle_id, self._source.get_vehicle)

    def list_products(self) -> list[Product]:
        products = self._source.list_products()
        with self._lock:
            self._products.update({p.id: p for p in products})
        return products

    def list_warehouses(self) -> list[Warehouse]:
        warehouses = self._source.list_warehouses()
        with self._lock:
            self._warehouses.update({w.id: w for w in warehouses})
        return warehouses

    def list_vehicles(self) -> list[Vehicle]:
        vehicles = self._source.list_vehicles()
        with self._lock:
            self._vehicles.update({v.id: v for v in vehicles})
        return vehicles

    def clear(self) -> None:
        with self._lock:
            self._products.clear()
            self._warehouses.clear()
            self._vehicles.clear()

    def _cached(self, cache: dict, entity_id: str, fetch):
        with self._lock:
            if entity_id in cache:
                return cache[entity_id]

        # Fetch outside the lock so one slow lookup does not block other imports
        entity = fetch(entity_id)
        if entity is not None:
            with self._lock:
                cache.setdefault(entity_id, entity)
        return entity


# ===================
# STRICT LOOKUPS
# ===================

def require_product(catalog: EntityCatalog, product_id: str) -> Product:
    """Get a product or raise ProductNotFoundError."""
    product = catalog.get_product(product_id)
    if product is None:
        logger.warning("product_not_found", product_id=product_id)
        raise ProductNotFoundError(product_id)
    return product


def require_warehouse(catalog: EntityCatalog, warehouse_id: str) -> Warehouse:
    """Get a warehouse or raise WarehouseNotFoundError."""
    warehouse = catalog.get_warehouse(warehouse_id)
    if warehouse is None:
        logger.warning("warehouse_not_found", warehouse_id=warehouse_id)
        raise WarehouseNotFoundError(warehouse_id)
    return warehouse


def require_vehicle(catalog: EntityCatalog, vehicle_id: str) -> Vehicle:
    """Get a vehicle or raise VehicleNotFoundError."""
    vehicle = catalog.get_vehicle(vehicle_id)
    if vehicle is None:
        logger.warning("vehicle_not_found", vehicle_id=vehicle_id)
        raise VehicleNotFoundError(vehicle_id)
    return vehicle
