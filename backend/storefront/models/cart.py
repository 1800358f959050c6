from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from storefront.db import Base, TimestampMixin

CART_STATUSES = ("open", "converted", "abandoned")


class Cart(TimestampMixin, Base):
    __tablename__ = "carts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # open|converted|abandoned
    status: Mapped[str] = mapped_column(String(20), default="open", nullable=False, index=True)
    total_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="MXN", nullable=False)

    items: Mapped[list["CartItem"]] = relationship(
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
        lazy="selectin",
    )

    def find_item(self, product_id: int) -> "CartItem | None":
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def recalculate_total(self) -> int:
        for item in self.items:
            item.subtotal_cents = item.quantity * item.price_snapshot_cents
        self.total_cents = sum(item.subtotal_cents for item in self.items)
        return self.total_cents


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    cart_id: Mapped[int] = mapped_column(ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    # unit price at the moment the item was added
    price_snapshot_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    cart: Mapped[Cart] = relationship(back_populates="items")


@event.listens_for(Session, "before_flush")
def _recalculate_cart_totals(session: Session, flush_context, instances) -> None:
    carts: set[Cart] = set()
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        if isinstance(obj, Cart) and obj not in session.deleted:
            carts.add(obj)
        elif isinstance(obj, CartItem) and obj.cart is not None and obj.cart not in session.deleted:
            carts.add(obj.cart)
    for cart in carts:
        cart.recalculate_total()
