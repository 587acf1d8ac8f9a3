# agency/api/routers/admin_catalog.py
from typing import List

from fastapi import APIRouter, Depends, Response

from agency.api.deps import get_admin_catalog_service, require_admin
from agency.api.errors import SERVICE_ERRORS, http_error
from agency.domain.schemas import (
    ActiveToggle,
    PackIn,
    PackOut,
    PackServiceIn,
    PackServiceOut,
    ServiceModuleIn,
    ServiceModuleOut,
)
from agency.domain.types import CartOwner
from agency.services.admin_catalog_service import AdminCatalogService

router = APIRouter(prefix="/admin/catalog", tags=["admin"])


@router.get("/packs", response_model=List[PackOut])
def list_packs(
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.list_packs()
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.post("/packs", response_model=PackOut, status_code=201)
def create_pack(
    payload: PackIn,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.create_pack(payload.model_dump(exclude_unset=True))
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.patch("/packs/{pack_id}", response_model=PackOut)
def update_pack(
    pack_id: str,
    payload: PackIn,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.update_pack(pack_id, payload.model_dump(exclude_unset=True))
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.patch("/packs/{pack_id}/active", response_model=PackOut)
def toggle_pack(
    pack_id: str,
    payload: ActiveToggle,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.toggle_pack_active(pack_id, payload.is_active)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.post("/packs/{pack_id}/duplicate", response_model=PackOut, status_code=201)
def duplicate_pack(
    pack_id: str,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.duplicate_pack(pack_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.delete("/packs/{pack_id}", status_code=204)
def delete_pack(
    pack_id: str,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        svc.delete_pack(pack_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return Response(status_code=204)


@router.get("/packs/{pack_id}/services", response_model=List[PackServiceOut])
def list_pack_services(
    pack_id: str,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.list_pack_services(pack_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.post("/packs/{pack_id}/services", response_model=PackServiceOut, status_code=201)
def add_service_to_pack(
    pack_id: str,
    payload: PackServiceIn,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.add_service_to_pack(pack_id, payload.service_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.delete("/pack-services/{pack_service_id}", status_code=204)
def remove_service_from_pack(
    pack_service_id: str,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        svc.remove_service_from_pack(pack_service_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return Response(status_code=204)


@router.get("/services", response_model=List[ServiceModuleOut])
def list_services(
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.list_services()
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.post("/services", response_model=ServiceModuleOut, status_code=201)
def create_service(
    payload: ServiceModuleIn,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.create_service(payload.model_dump(exclude_unset=True))
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.patch("/services/{service_id}", response_model=ServiceModuleOut)
def update_service(
    service_id: str,
    payload: ServiceModuleIn,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.update_service(service_id, payload.model_dump(exclude_unset=True))
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.patch("/services/{service_id}/active", response_model=ServiceModuleOut)
def toggle_service(
    service_id: str,
    payload: ActiveToggle,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        return svc.toggle_service_active(service_id, payload.is_active)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.delete("/services/{service_id}", status_code=204)
def delete_service(
    service_id: str,
    _admin: CartOwner = Depends(require_admin),
    svc: AdminCatalogService = Depends(get_admin_catalog_service),
):
    try:
        svc.delete_service(service_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)
    return Response(status_code=204)
