# agency/api/deps.py
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from agency.data.database import build_engine, build_session_factory, get_db
from agency.domain.types import CartOwner
from agency.repos.profile_repo import ProfileRepo
from agency.services.admin_catalog_service import AdminCatalogService
from agency.services.admin_project_service import AdminProjectService
from agency.services.anonymous_cart_store import AnonymousCartStore
from agency.services.cart_service import CartService
from agency.services.catalog_service import CatalogService
from agency.services.functions_client import FunctionsClient
from agency.services.order_service import OrderService
from agency.services.project_service import ProjectService
from agency.services.realtime_service import ProjectChangeBus
from agency.utils.settings import DATABASE_URL, REDIS_URL


@dataclass
class AppState:
    """
    Wszystko co zyje tyle co aplikacja. Budowane w lifespan, zamykane przy shutdown.
    """

    engine: Engine
    session_factory: sessionmaker
    anonymous_store: AnonymousCartStore
    functions_client: FunctionsClient
    change_bus: ProjectChangeBus

    @classmethod
    def from_settings(cls) -> "AppState":
        engine = build_engine(DATABASE_URL)
        return cls(
            engine=engine,
            session_factory=build_session_factory(engine),
            anonymous_store=AnonymousCartStore.from_url(REDIS_URL),
            functions_client=FunctionsClient(),
            change_bus=ProjectChangeBus.from_url(REDIS_URL),
        )

    def close(self):
        self.functions_client.close()
        self.anonymous_store.redis.close()
        self.change_bus.redis.close()
        self.engine.dispose()


def get_state(request: Request) -> AppState:
    return request.app.state.container


def get_owner(
    x_user_id: str | None = Header(None),
    x_device_id: str | None = Header(None),
    authorization: str | None = Header(None),
) -> CartOwner:
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip() or None
    return CartOwner(user_id=x_user_id or None, device_id=x_device_id or None, access_token=token)


def require_user(owner: CartOwner = Depends(get_owner)) -> CartOwner:
    if not owner.is_authenticated:
        raise HTTPException(status_code=401, detail="Debes iniciar sesión")
    return owner


def require_admin(owner: CartOwner = Depends(require_user), db: Session = Depends(get_db)) -> CartOwner:
    if not ProfileRepo(db).is_admin(owner.user_id):
        raise HTTPException(status_code=403, detail="Acceso restringido a administradores")
    return owner


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_cart_service(db: Session = Depends(get_db), state: AppState = Depends(get_state)) -> CartService:
    return CartService(db=db, anonymous_store=state.anonymous_store)


def get_order_service(
    db: Session = Depends(get_db),
    cart_service: CartService = Depends(get_cart_service),
) -> OrderService:
    return OrderService(db, cart_service)


def get_project_service(db: Session = Depends(get_db), state: AppState = Depends(get_state)) -> ProjectService:
    return ProjectService(db, state.functions_client, state.change_bus)


def get_admin_project_service(
    db: Session = Depends(get_db),
    state: AppState = Depends(get_state),
) -> AdminProjectService:
    return AdminProjectService(db, state.change_bus)


def get_admin_catalog_service(db: Session = Depends(get_db)) -> AdminCatalogService:
    return AdminCatalogService(db)
