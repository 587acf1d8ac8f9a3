# agency/api/routers/catalog.py
from typing import List

from fastapi import APIRouter, Depends

from agency.api.deps import get_catalog_service
from agency.api.errors import SERVICE_ERRORS, http_error
from agency.domain.schemas import PackOut, ServiceModuleOut
from agency.services.catalog_service import CatalogService

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/packs", response_model=List[PackOut])
def list_packs(svc: CatalogService = Depends(get_catalog_service)):
    try:
        return svc.list_packs()
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("/packs/{pack_id}", response_model=PackOut)
def get_pack(pack_id: str, svc: CatalogService = Depends(get_catalog_service)):
    try:
        return svc.get_pack(pack_id)
    except SERVICE_ERRORS as e:
        raise http_error(e)


@router.get("/services", response_model=List[ServiceModuleOut])
def list_services(svc: CatalogService = Depends(get_catalog_service)):
    try:
        return svc.list_services()
    except SERVICE_ERRORS as e:
        raise http_error(e)
