from sqlalchemy import select

from app.wms.core.config import settings
from app.wms.db.models import Client, Location, Organization, Product, Warehouse


DEFAULT_LOCATIONS = [
    ("RCV-01", "RECEIVING"),
    ("A-01-01", "A"),
    ("A-01-02", "A"),
    ("B-01-01", "B"),
]

DEFAULT_PRODUCTS = [
    ("SKU-0001", "Sample product 1"),
    ("SKU-0002", "Sample product 2"),
]


def _get_or_create_org(db):
    org = db.execute(select(Organization).where(Organization.name == settings.DEFAULT_ORG_NAME)).scalars().first()
    if org:
        return org
    org = Organization(name=settings.DEFAULT_ORG_NAME)
    db.add(org)
    db.flush()
    return org


def _get_or_create_warehouse(db, org):
    warehouse = (
        db.execute(
            select(Warehouse).where(Warehouse.org_id == org.id, Warehouse.name == settings.DEFAULT_WAREHOUSE_NAME)
        )
        .scalars()
        .first()
    )
    if warehouse:
        return warehouse
    warehouse = Warehouse(org_id=org.id, name=settings.DEFAULT_WAREHOUSE_NAME, code="MAIN")
    db.add(warehouse)
    db.flush()
    return warehouse


def _get_or_create_client(db, org):
    client = (
        db.execute(select(Client).where(Client.org_id == org.id, Client.name == settings.DEFAULT_CLIENT_NAME))
        .scalars()
        .first()
    )
    if client:
        return client
    client = Client(org_id=org.id, name=settings.DEFAULT_CLIENT_NAME)
    db.add(client)
    db.flush()
    return client


def _get_or_create_locations(db, warehouse):
    existing = {
        location.code
        for location in db.execute(select(Location).where(Location.warehouse_id == warehouse.id)).scalars().all()
    }
    for code, zone in DEFAULT_LOCATIONS:
        if code in existing:
            continue
        db.add(Location(warehouse_id=warehouse.id, code=code, zone=zone, status="ACTIVE"))


def _get_or_create_products(db, org):
    existing = {product.sku for product in db.execute(select(Product).where(Product.org_id == org.id)).scalars().all()}
    for sku, name in DEFAULT_PRODUCTS:
        if sku in existing:
            continue
        db.add(Product(org_id=org.id, sku=sku, name=name))


def run_seed(db):
    org = _get_or_create_org(db)
    warehouse = _get_or_create_warehouse(db, org)
    _get_or_create_client(db, org)
    _get_or_create_locations(db, warehouse)
    _get_or_create_products(db, org)
    db.commit()
