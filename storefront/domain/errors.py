# storefront/domain/errors.py


class CheckoutError(Exception):
    """Baza dla wszystkich bledow koszyka i checkoutu."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class TransientNetworkFailure(CheckoutError):
    """Nieudane wywolanie sieciowe. Da sie powtorzyc, nigdy nie zakladamy sukcesu."""

    def __init__(self, message: str = "", status_code: int | None = None):
        super().__init__(message or "Network request failed")
        self.status_code = status_code


class AuthenticationRequired(CheckoutError):
    """401/403 - koniec biezacej proby, przekierowanie na login."""

    redirect = "/login"

    def __init__(self, message: str = ""):
        super().__init__(message or "Please log in to continue")


class ValidationRejection(CheckoutError):
    """Serwer odrzucil zamowienie, komunikat pokazujemy 1:1."""


class PaymentCancelled(CheckoutError):
    """Uzytkownik zamknal okno platnosci - to nie jest blad."""

    def __init__(self, message: str = ""):
        super().__init__(message or "Payment cancelled. You can try again.")


class PaymentVerificationFailure(CheckoutError):
    """Podpis platnosci odrzucony. Po tym nigdy nie wysylamy zamowienia."""


class PostPaymentCommitFailure(CheckoutError):
    """Platnosc pobrana, zamowienie nie zapisane. Wymaga kontaktu z supportem."""

    def __init__(self, message: str = "", payment_id: str | None = None):
        super().__init__(message)
        self.payment_id = payment_id


class IllegalStateTransition(CheckoutError):
    pass


class CheckoutInProgress(CheckoutError):
    """Przycisk zamowienia zablokowany - w tej sesji trwa inna proba."""

    def __init__(self, message: str = ""):
        super().__init__(message or "A checkout is already in progress")
