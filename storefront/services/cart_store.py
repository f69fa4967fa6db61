# storefront/services/cart_store.py
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.data.models.local_cart_item import LocalCartItemModel
from storefront.domain.errors import AuthenticationRequired, CheckoutError, TransientNetworkFailure
from storefront.domain.schemas import CartSnapshot, LineItem, PageContext
from storefront.repos.local_cart_repo import LocalCartRepo
from storefront.services.storefront_client import StorefrontClient
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class RemoteCartBackend:
    """
    Koszyk zalogowanego uzytkownika - jedynym zrodlem prawdy jest serwer.
    Po kazdej komendzie robimy pelny odczyt, zadnych optymistycznych zmian lokalnie.
    """

    authenticated = True

    def __init__(self, client: StorefrontClient):
        self.client = client

    #query
    def read(self) -> CartSnapshot:
        try:
            return self.client.get_cart()
        except AuthenticationRequired:
            raise
        except TransientNetworkFailure as e:
            # pusty koszyk do renderowania, nigdy dane z koszyka anonimowego
            logger.warning(f"Remote cart read failed, rendering empty cart: {e}")
            return CartSnapshot()

    #commands
    def add(self, product_id: int, quantity: int) -> CartSnapshot:
        self.client.add_cart_item(product_id, quantity)
        return self.read()

    def set_quantity(self, product_id: int, quantity: int) -> CartSnapshot:
        # wartosc < 1 przekazujemy bez zmian, polityke ustala serwer
        self.client.update_cart_item(product_id, quantity)
        return self.read()

    def remove(self, product_id: int) -> CartSnapshot:
        self.client.remove_cart_item(product_id)
        return self.read()

    def clear(self) -> CartSnapshot:
        try:
            self.client.clear_cart()
        except CheckoutError as e:
            logger.info(f"Remote cart clear skipped: {e}")
        return self.read()


class LocalCartBackend:
    """
    Koszyk anonimowy trzymany lokalnie per urzadzenie.
    set_quantity nigdy nie usuwa pozycji (clamp do 1), usuwa tylko remove().
    """

    authenticated = False

    def __init__(self, db: Session, device_id: str, client: StorefrontClient):
        self.repo = LocalCartRepo(db)
        self.device_id = device_id
        self.client = client

    #query
    def read(self) -> CartSnapshot:
        rows = self.repo.get_items(self.device_id)
        return CartSnapshot(
            items=[
                LineItem(
                    product_id=r.product_id,
                    name=r.name,
                    unit_price=r.unit_price,
                    quantity=r.quantity,
                    image_url=r.image_url,
                )
                for r in rows
                if r.quantity >= 1
            ]
        )

    #commands
    def add(self, product_id: int, quantity: int) -> CartSnapshot:
        logger.info(f"Fetching product {product_id} for local cart {self.device_id}")
        pdata = self.client.fetch_product(product_id)
        price = Decimal(str(pdata.get("priceAmount") or pdata.get("price") or 0))

        try:
            existing = self.repo.get_item(self.device_id, product_id)

            if existing:
                logger.info(
                    f"Product {product_id} already in local cart, quantity "
                    f"{existing.quantity} -> {existing.quantity + quantity}"
                )
                existing.quantity += quantity
                existing.unit_price = price
            else:
                self.repo.add_item(
                    LocalCartItemModel(
                        device_id=self.device_id,
                        product_id=product_id,
                        name=pdata.get("name") or pdata.get("productName") or "",
                        unit_price=price,
                        quantity=quantity,
                        image_url=pdata.get("imageUrl"),
                    )
                )
            self.repo.commit()
        except Exception as e:
            logger.error(f"Failed to add product {product_id} to local cart: {e}")
            self.repo.rollback()
            raise

        return self.read()

    def set_quantity(self, product_id: int, quantity: int) -> CartSnapshot:
        item = self.repo.get_item(self.device_id, product_id)
        if not item:
            raise ValueError(f"Product {product_id} is not in the cart")

        item.quantity = max(1, quantity)
        self.repo.commit()
        return self.read()

    def remove(self, product_id: int) -> CartSnapshot:
        self.repo.delete_item(self.device_id, product_id)
        self.repo.commit()
        return self.read()

    def clear(self) -> CartSnapshot:
        removed = self.repo.delete_all(self.device_id)
        self.repo.commit()
        logger.info(f"Local cart {self.device_id} cleared ({removed} lines)")
        return self.read()


class CartStore:
    """
    Jeden widok koszyka nad dwoma backendami.
    Backend wybierany raz, z flagi logowania strony - nigdy w trakcie operacji.
    Koszyki nie sa laczone.
    """

    def __init__(self, backend):
        self.backend = backend

    @classmethod
    def for_page(cls, ctx: PageContext, client: StorefrontClient, db: Session) -> "CartStore":
        if ctx.authenticated:
            return cls(RemoteCartBackend(client))
        return cls(LocalCartBackend(db, ctx.device_id, client))

    @property
    def authenticated(self) -> bool:
        return self.backend.authenticated

    def read(self) -> CartSnapshot:
        return self.backend.read()

    def add(self, product_id: int, quantity: int = 1) -> CartSnapshot:
        if quantity <= 0:
            raise ValueError("Quantity must be at least 1")
        logger.info(f"Cart add product={product_id} qty={quantity} authenticated={self.authenticated}")
        return self.backend.add(product_id, quantity)

    def set_quantity(self, product_id: int, quantity: int) -> CartSnapshot:
        logger.info(f"Cart set product={product_id} qty={quantity} authenticated={self.authenticated}")
        return self.backend.set_quantity(product_id, quantity)

    def remove(self, product_id: int) -> CartSnapshot:
        logger.info(f"Cart remove product={product_id} authenticated={self.authenticated}")
        return self.backend.remove(product_id)

    def clear(self) -> CartSnapshot:
        logger.info(f"Cart clear authenticated={self.authenticated}")
        return self.backend.clear()
