# agency/domain/types.py
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class CartOwner:
    """Kto operuje na koszyku: zalogowany user albo anonimowe urzadzenie."""

    user_id: str | None = None
    device_id: str | None = None
    access_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)


@dataclass
class RemovalImpact:
    """Podglad usuniecia pozycji z koszyka (faza 1 dwufazowego usuwania)."""

    item_id: str
    item_type: str
    cascaded_item_ids: List[str] = field(default_factory=list)

    @property
    def requires_confirmation(self) -> bool:
        return bool(self.cascaded_item_ids)

    @property
    def message(self) -> str:
        if self.requires_confirmation:
            return (
                "Si eliminas este pack, también se eliminarán todos los servicios "
                "del carrito. ¿Deseas continuar?"
            )
        return "Producto eliminado del carrito"
