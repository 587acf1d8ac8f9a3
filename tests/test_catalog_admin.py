"""Tests for the admin catalog manager."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from agency.data.models import PackModel, PackServiceModel, ServiceModuleModel
from agency.domain.errors import StoreError
from agency.services.admin_catalog_service import AdminCatalogService, slug_suffix


@pytest.fixture
def admin_catalog(db):
    return AdminCatalogService(db)


def _db_error(*args, **kwargs):
    raise OperationalError("UPDATE", {}, Exception("database is locked"))


class TestPacks:
    def test_create_with_defaults(self, admin_catalog, catalog):
        pack = admin_catalog.create_pack({})
        assert pack.name == "Nuevo Pack"
        assert pack.price == Decimal("0")
        assert pack.target == "Todo tipo de negocios"
        assert pack.type == "basic"
        assert pack.color == "blue-500"
        assert pack.is_active is True
        assert pack.slug.startswith("nuevo-pack-")
        # pozycja za ostatnim packiem
        assert pack.position == 5

    def test_first_pack_gets_position_one(self, admin_catalog):
        assert admin_catalog.create_pack({"name": "Solo"}).position == 1

    def test_duplicate_slug(self, admin_catalog, catalog):
        with pytest.raises(ValueError, match="slug"):
            admin_catalog.create_pack({"slug": "pack-base"})

    def test_update_keeps_unset_fields(self, admin_catalog, catalog):
        pack = admin_catalog.update_pack("pack-pro", {"price": Decimal("1590.00"), "name": None})
        assert pack.price == Decimal("1590.00")
        assert pack.name == "Pack Pro"

    def test_toggle(self, admin_catalog, catalog):
        assert admin_catalog.toggle_pack_active("pack-old", True).is_active is True

    def test_duplicate(self, admin_catalog, catalog):
        admin_catalog.update_pack("pack-base", {"features": ["Web corporativa"]})
        copy = admin_catalog.duplicate_pack("pack-base")
        assert copy.id != "pack-base"
        assert copy.name == "Pack Base (copia)"
        assert copy.slug.startswith("pack-base-copia-")
        assert copy.price == Decimal("890.00")
        assert copy.features == ["Web corporativa"]
        assert copy.position == 5

    def test_delete_removes_links(self, admin_catalog, catalog, db):
        admin_catalog.add_service_to_pack("pack-base", "svc-seo")
        admin_catalog.delete_pack("pack-base")
        assert db.get(PackModel, "pack-base") is None
        assert db.query(PackServiceModel).count() == 0

    def test_missing_pack(self, admin_catalog, catalog):
        with pytest.raises(LookupError):
            admin_catalog.update_pack("missing", {"name": "x"})
        with pytest.raises(LookupError):
            admin_catalog.delete_pack("missing")

    def test_list_includes_inactive(self, admin_catalog, catalog):
        assert "pack-old" in [p.id for p in admin_catalog.list_packs()]

    def test_store_failure(self, admin_catalog, catalog, monkeypatch):
        monkeypatch.setattr(admin_catalog.repo, "save", _db_error)
        with pytest.raises(StoreError, match="Error al actualizar el pack"):
            admin_catalog.update_pack("pack-base", {"name": "x"})


class TestPackServices:
    def test_add_list_remove(self, admin_catalog, catalog):
        link = admin_catalog.add_service_to_pack("pack-pro", "svc-blog")
        assert link["service_name"] == "Blog"
        assert link["price"] == Decimal("120.00")

        assert [s["service_id"] for s in admin_catalog.list_pack_services("pack-pro")] == ["svc-blog"]
        admin_catalog.remove_service_from_pack(link["id"])
        assert admin_catalog.list_pack_services("pack-pro") == []

    def test_already_included(self, admin_catalog, catalog):
        admin_catalog.add_service_to_pack("pack-pro", "svc-blog")
        with pytest.raises(ValueError, match="ya está incluido"):
            admin_catalog.add_service_to_pack("pack-pro", "svc-blog")

    def test_unknown_service(self, admin_catalog, catalog):
        with pytest.raises(LookupError):
            admin_catalog.add_service_to_pack("pack-pro", "svc-missing")

    def test_remove_missing_link(self, admin_catalog, catalog):
        with pytest.raises(LookupError):
            admin_catalog.remove_service_from_pack("missing")


class TestServices:
    def test_create_with_defaults(self, admin_catalog):
        service = admin_catalog.create_service({"name": "Hosting"})
        assert service.name == "Hosting"
        assert service.category == "technical"
        assert service.price == Decimal("0")
        assert service.is_active is True

    def test_update_and_toggle(self, admin_catalog, catalog):
        service = admin_catalog.update_service("svc-seo", {"category": "seo", "price": Decimal("250.00")})
        assert (service.category, service.price) == ("seo", Decimal("250.00"))
        assert admin_catalog.toggle_service_active("svc-seo", False).is_active is False
        assert "svc-seo" in [s.id for s in admin_catalog.list_services()]

    def test_delete_removes_links(self, admin_catalog, catalog, db):
        admin_catalog.add_service_to_pack("pack-base", "svc-seo")
        admin_catalog.delete_service("svc-seo")
        assert db.get(ServiceModuleModel, "svc-seo") is None
        assert db.query(PackServiceModel).count() == 0

    def test_missing_service(self, admin_catalog):
        with pytest.raises(LookupError):
            admin_catalog.toggle_service_active("missing", True)


def test_slug_suffix_is_base36():
    assert slug_suffix(0) == "0"
    assert slug_suffix(36) == "rs0"
