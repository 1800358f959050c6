import logging

from sqlalchemy import delete, or_, update
from sqlalchemy.orm import Session

from storefront.core.errors import DuplicateKeyError, InsufficientStock, ProductNotFound, ValidationError
from storefront.core.text import literal_like, slugify
from storefront.models.cart import CartItem
from storefront.models.order import OrderItem
from storefront.models.product import Product
from storefront.schemas.product import ProductCreate, ProductUpdate
from storefront.tenancy.queries import get_owned, scoped_count, scoped_select, scoped_update

logger = logging.getLogger(__name__)


def _slug_taken(db: Session, tenant_id: int, slug: str, exclude_id: int | None = None) -> bool:
    stmt = scoped_select(Product, tenant_id, slug=slug)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    return db.scalar(stmt) is not None


def list_products(
    db: Session,
    tenant_id: int,
    is_active: bool | None = True,
    category: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Product], int]:
    criteria = []
    filters = {}
    if is_active is not None:
        filters["is_active"] = is_active
    if category and category.strip():
        filters["category"] = category.strip().lower()
    if search and search.strip():
        # user input is matched literally, never as a pattern
        pattern = literal_like(search.strip().lower())
        criteria.append(or_(
            Product.name.ilike(pattern, escape="\\"),
            Product.description.ilike(pattern, escape="\\"),
        ))

    total = scoped_count(db, Product, tenant_id, *criteria, **filters)
    stmt = (
        scoped_select(Product, tenant_id, *criteria, **filters)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(db.scalars(stmt)), total


def get_product(db: Session, tenant_id: int, product_id: int) -> Product:
    product = get_owned(db, Product, tenant_id, product_id)
    if product is None:
        raise ProductNotFound()
    return product


def create_product(db: Session, tenant_id: int, payload: ProductCreate) -> Product:
    data = payload.model_dump()
    slug = data.pop("slug") or slugify(payload.name)
    if not slug:
        raise ValidationError("Could not derive a slug from the product name")
    if _slug_taken(db, tenant_id, slug):
        raise DuplicateKeyError(f"Product '{slug}' already exists")

    product = Product(tenant_id=tenant_id, slug=slug, is_active=True, **data)
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Product created: tenant=%s product=%s slug=%s", tenant_id, product.id, slug)
    return product


def update_product(db: Session, tenant_id: int, product_id: int, payload: ProductUpdate) -> Product:
    product = get_product(db, tenant_id, product_id)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None or k in ("description", "category", "image_url")}

    if "slug" in changes and changes["slug"] != product.slug and _slug_taken(db, tenant_id, changes["slug"], product.id):
        raise DuplicateKeyError(f"Product '{changes['slug']}' already exists")

    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return product


def deactivate_product(db: Session, tenant_id: int, product_id: int) -> Product:
    product = get_product(db, tenant_id, product_id)
    product.is_active = False
    db.commit()
    db.refresh(product)
    logger.info("Product deactivated: tenant=%s product=%s", tenant_id, product.id)
    return product


def purge_product(db: Session, tenant_id: int, product_id: int) -> None:
    product = get_product(db, tenant_id, product_id)
    # order lines keep their name/price snapshot; cart lines go away
    db.execute(update(OrderItem).where(OrderItem.product_id == product.id).values(product_id=None))
    db.execute(delete(CartItem).where(CartItem.product_id == product.id))
    db.delete(product)
    db.commit()
    logger.warning("Product deleted permanently: tenant=%s product=%s", tenant_id, product_id)


def apply_stock_delta(db: Session, tenant_id: int, product_id: int, delta: int) -> bool:
    """
    Conditional increment inside the caller's transaction.

        UPDATE products SET stock = stock + :delta
        WHERE tenant_id = :tid AND id = :id AND stock + :delta >= 0

    Returns False when no row matched; stock is untouched in that case.
    """
    stmt = (
        scoped_update(Product, tenant_id, Product.id == product_id, Product.stock + delta >= 0)
        .values(stock=Product.stock + delta)
    )
    return db.execute(stmt).rowcount == 1


def adjust_stock(db: Session, tenant_id: int, product_id: int, delta: int) -> Product:
    if not apply_stock_delta(db, tenant_id, product_id, delta):
        db.rollback()
        if get_owned(db, Product, tenant_id, product_id) is None:
            raise ProductNotFound()
        raise InsufficientStock(details={"product_id": product_id, "delta": delta})
    db.commit()

    product = get_product(db, tenant_id, product_id)
    db.refresh(product)
    logger.info("Stock adjusted: tenant=%s product=%s delta=%s stock=%s", tenant_id, product_id, delta, product.stock)
    return product
