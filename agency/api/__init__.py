# agency/api/__init__.py
from fastapi import FastAPI

from agency.api.routers import health, catalog, cart, orders, projects, admin_projects, admin_catalog, functions


def include_routers(app: FastAPI) -> FastAPI:
    app.include_router(health.router)
    app.include_router(catalog.router)
    app.include_router(cart.router)
    app.include_router(orders.router)
    app.include_router(projects.router)
    app.include_router(admin_projects.router)
    app.include_router(admin_catalog.router)
    app.include_router(functions.router)
    return app
