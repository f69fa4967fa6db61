# storefront/services/checkout_aggregator.py
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Sequence

from storefront.domain.schemas import CartSnapshot, CheckoutTotals, CheckoutView, LineItem
from storefront.services.cart_store import CartStore
from storefront.services.selection_tracker import SelectionTracker
from storefront.utils.logging import get_logger
from storefront.utils.settings import CHECKOUT_TAX_RATE, SHIPPING_FEE

logger = get_logger(__name__)

CENT = Decimal("0.01")


def compute_totals(
    items: Sequence[LineItem],
    tax_rate: Decimal,
    shipping: Decimal = SHIPPING_FEE,
) -> CheckoutTotals:
    """
    subtotal = suma(cena * ilosc)
    tax      = round(subtotal * stawka, 2)
    total    = subtotal + tax + shipping

    Wynik klienta jest tylko informacyjny, kwote ostatecznie liczy serwer.
    """
    subtotal = sum((i.unit_price * i.quantity for i in items), Decimal("0.00")).quantize(CENT)
    tax = (subtotal * Decimal(tax_rate)).quantize(CENT, rounding=ROUND_HALF_UP)
    shipping = Decimal(shipping).quantize(CENT)

    return CheckoutTotals(
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        total=subtotal + tax + shipping,
    )


def select_items(snapshot: CartSnapshot, selection: Sequence[str] | None) -> List[LineItem]:
    """
    Filtr koszyka po wyborze uzytkownika.
    Brak wyboru albo wybor ktory nie trafia w zadna pozycje (nieaktualny)
    -> caly koszyk, zeby checkout nie skonczyl sie pustym ekranem.
    """
    if not selection:
        return list(snapshot.items)

    wanted = {str(pid) for pid in selection}
    filtered = [i for i in snapshot.items if str(i.product_id) in wanted]

    if not filtered:
        logger.warning(f"Selection {sorted(wanted)} matches nothing in the cart, using the whole cart")
        return list(snapshot.items)
    return filtered


class CheckoutAggregator:
    """Sklada Cart Store + Selection Tracker w pozycje i kwoty checkoutu."""

    def __init__(
        self,
        cart_store: CartStore,
        selection: SelectionTracker,
        tax_rate: Decimal = CHECKOUT_TAX_RATE,
    ):
        self.cart_store = cart_store
        self.selection = selection
        self.tax_rate = tax_rate
        self.last_snapshot: CartSnapshot = CartSnapshot()

    def build_checkout_view(self) -> CheckoutView | None:
        """None oznacza Empty - wywolujacy przekierowuje do koszyka."""
        self.last_snapshot = self.cart_store.read()
        items = select_items(self.last_snapshot, self.selection.consume())

        if not items:
            logger.info("Checkout view is empty")
            return None

        return CheckoutView(items=items, totals=compute_totals(items, self.tax_rate))

    def resolve_product_ids(self) -> List[str]:
        """
        Id do zamowienia w chwili commitu. Swiezy odczyt koszyka, a gdy ten jest
        pusty (np. serwer chwilowo nie odpowiada) - ostatni znany odczyt.
        Nigdy pusta lista jesli cokolwiek bylo w koszyku.
        """
        snapshot = self.cart_store.read()
        if snapshot.is_empty():
            snapshot = self.last_snapshot
        else:
            self.last_snapshot = snapshot

        items = select_items(snapshot, self.selection.consume())
        return [str(i.product_id) for i in items]
