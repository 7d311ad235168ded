from __future__ import annotations

from sqlalchemy import select

from app.wms.db.models import Client, Location, Product, Warehouse


class ReferenceRepository:
    """Read-only lookups against master data owned by other subsystems."""

    def __init__(self, db):
        self.db = db

    def get_warehouse(self, warehouse_id: str, org_id: str) -> Warehouse | None:
        return (
            self.db.execute(select(Warehouse).where(Warehouse.id == warehouse_id, Warehouse.org_id == org_id))
            .scalars()
            .first()
        )

    def get_client(self, client_id: str, org_id: str) -> Client | None:
        return self.db.execute(select(Client).where(Client.id == client_id, Client.org_id == org_id)).scalars().first()

    def existing_product_ids(self, org_id: str, product_ids) -> set[str]:
        ids = {str(product_id) for product_id in product_ids}
        if not ids:
            return set()
        rows = self.db.execute(select(Product.id).where(Product.org_id == org_id, Product.id.in_(ids))).scalars().all()
        return {str(row) for row in rows}

    def get_active_location(self, location_id: str, warehouse_id: str) -> Location | None:
        return (
            self.db.execute(
                select(Location).where(
                    Location.id == location_id,
                    Location.warehouse_id == warehouse_id,
                    Location.status == "ACTIVE",
                )
            )
            .scalars()
            .first()
        )

    def list_active_locations(self, warehouse_id: str) -> list[Location]:
        return (
            self.db.execute(
                select(Location)
                .where(Location.warehouse_id == warehouse_id, Location.status == "ACTIVE")
                .order_by(Location.code)
            )
            .scalars()
            .all()
        )
