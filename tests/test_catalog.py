"""
Unit tests for the service catalog and the price estimator.
"""

import pytest

from core.exceptions import NotFoundError, ValidationError
from models.catalog import DEFAULT_SERVICES, Service
from modules.estimator import PriceEstimator
from services.catalog_service import CatalogService
from tests.conftest import FakeGateway


# Fixtures

@pytest.fixture
def business_cards():
    return Service(
        id=3,
        name="Business Cards",
        base_price=15.0,
        available_finishes=["lamination", "uv_coating", "embossing"],
    )


@pytest.fixture
def estimator():
    return PriceEstimator()


@pytest.fixture
def gateway():
    return FakeGateway({
        "services": [
            {"id": 1, "name": "Posters", "base_price": 30.0, "is_active": True},
            {"id": 2, "name": "Banner Printing", "base_price": 35.0, "is_active": True,
             "available_finishes": ["cutting", "embossing"]},
            {"id": 3, "name": "Old Stickers", "base_price": 5.0, "is_active": False},
        ],
    })


@pytest.fixture
def catalog(gateway):
    return CatalogService(gateway)


# Tests for PriceEstimator

class TestPriceEstimator:
    """Test indicative pricing."""

    def test_standard_estimate(self, estimator, business_cards):
        estimate = estimator.estimate(business_cards, 10, ["lamination"])

        assert estimate["price_per_copy"] == 20.0
        assert estimate["estimated_total"] == 200.0
        assert estimate["turnaround_multiplier"] == 1.0
        assert estimate["finishing"][0]["name"] == "Lamination"

    def test_turnaround_multipliers(self, estimator, business_cards):
        """Test rush costs more and economy less."""
        rush = estimator.estimate(business_cards, 10, ["lamination"], turnaround="rush")
        economy = estimator.estimate(business_cards, 10, ["lamination"], turnaround="economy")

        assert rush["estimated_total"] == 280.0
        assert economy["estimated_total"] == 170.0

    def test_finish_not_offered(self, estimator, business_cards):
        with pytest.raises(ValidationError) as exc_info:
            estimator.estimate(business_cards, 1, ["binding"])
        assert "not offered" in exc_info.value.message

    def test_unknown_finish(self, estimator, business_cards):
        with pytest.raises(ValidationError):
            estimator.estimate(business_cards, 1, ["glitter"])

    def test_quantity_must_be_positive(self, estimator, business_cards):
        with pytest.raises(ValidationError):
            estimator.estimate(business_cards, 0)


# Tests for Service

class TestServiceModel:
    """Test catalog rows."""

    def test_from_row_defaults(self):
        service = Service.from_row({"id": 9, "name": "Mugs"})

        assert service.is_active is True
        assert service.base_price == 0.0
        assert service.available_finishes == []

    def test_to_dict_lists_finishing_in_price_list_order(self, business_cards):
        data = business_cards.to_dict()

        assert data["id"] == 3
        assert [o["id"] for o in data["finishing_options"]] == ["lamination", "embossing", "uv_coating"]

    def test_default_services(self):
        assert len(DEFAULT_SERVICES) == 6
        assert all(service.base_price > 0 for service in DEFAULT_SERVICES)


# Tests for CatalogService

class TestCatalogService:
    """Test catalog reads and edits."""

    def test_list_active_sorted_by_name(self, catalog):
        assert [s.name for s in catalog.list_active()] == ["Banner Printing", "Posters"]

    def test_create_sanitizes_and_activates(self, catalog, gateway):
        service = catalog.create({
            "name": "<b>Stickers</b>",
            "base_price": "4.5",
            "available_finishes": ["cutting"],
        })

        assert service.name == "Stickers"
        assert service.base_price == 4.5
        assert service.is_active is True

    def test_create_rejects_unknown_finish(self, catalog, gateway):
        with pytest.raises(ValidationError):
            catalog.create({"name": "Mugs", "base_price": 10, "available_finishes": ["glitter"]})
        assert len(gateway.rows("services")) == 3

    def test_create_rejects_negative_price(self, catalog):
        with pytest.raises(ValidationError):
            catalog.create({"name": "Mugs", "base_price": -1})

    def test_deactivate_keeps_row(self, catalog, gateway):
        service = catalog.deactivate(1)

        assert service.is_active is False
        assert len(gateway.rows("services")) == 3
        assert [s.name for s in catalog.list_active()] == ["Banner Printing"]

    def test_update_unknown_service(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.update(99, {"name": "Ghost"})

    def test_initialize_defaults_only_when_empty(self, catalog):
        assert catalog.initialize_defaults() == 0

        empty = CatalogService(FakeGateway())
        assert empty.initialize_defaults() == 6
        assert empty.initialize_defaults() == 0
