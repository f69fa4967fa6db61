from sqlalchemy import Column, Integer, Numeric, String, UniqueConstraint

from storefront.data.database import Base


class LocalCartItemModel(Base):
    """Koszyk anonimowy, przypisany do urzadzenia (device_id)."""

    __tablename__ = "local_cart_items"

    id = Column(Integer, primary_key=True)
    device_id = Column(String(64), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)

    name = Column(String, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    image_url = Column(String, nullable=True)

    __table_args__ = (UniqueConstraint("device_id", "product_id", name="u_device_product"),)
