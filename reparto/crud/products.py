from sqlalchemy.orm import Session
from reparto.models import Product
from reparto.schemas.products import ProductCreate


def get_product(db: Session, tenant_id: int, product_id: int):
    return db.query(Product).filter(Product.id == product_id, Product.tenant_id == tenant_id).first()


def get_products(db: Session, tenant_id: int, include_inactive: bool = False):
    query = db.query(Product).filter(Product.tenant_id == tenant_id)
    if not include_inactive:
        query = query.filter(Product.is_active == True)
    return query.order_by(Product.name).all()


def get_product_by_slot(db: Session, tenant_id: int, slot):
    return db.query(Product).filter(Product.tenant_id == tenant_id, Product.legacy_slot == slot).first()


def create_product(db: Session, tenant_id: int, product_in: ProductCreate) -> Product:
    db_product = Product(
        tenant_id=tenant_id,
        name=product_in.name,
        unit_price=product_in.unit_price,
        stock=product_in.stock,
        legacy_slot=product_in.legacy_slot,
        is_active=True,
    )
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    return db_product
