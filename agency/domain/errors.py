# agency/domain/errors.py


class StoreError(RuntimeError):
    """Blad bazy danych, message jest bezpieczny do pokazania uzytkownikowi."""


class FunctionCallError(RuntimeError):
    """Funkcja uprzywilejowana odpowiedziala statusem innym niz 2xx."""

    def __init__(self, function_name: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.function_name = function_name
        self.status_code = status_code


class ConfirmationRequiredError(Exception):
    """Usuniecie wymaga potwierdzenia, niesie podglad skutkow (RemovalImpact)."""

    def __init__(self, impact):
        super().__init__(impact.message)
        self.impact = impact
