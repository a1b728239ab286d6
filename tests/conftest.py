"""
Shared fixtures for unit, integration and API tests.
"""

import pytest

from recallguard.config.settings import MatchingConfig, PushConfig
from recallguard.controllers.matching_controller import MatchingController
from recallguard.models.item import FoodItem, Product, Vehicle
from recallguard.models.recall import FoodRecall, ProductRecall, VehicleRecall
from recallguard.observability.metrics import MatchingMetrics
from recallguard.services.notification_dispatcher import NotificationDispatcher
from recallguard.storage.memory import InMemoryStorage
from tests.fakes import FakeGenerator, FakeTransport


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def metrics():
    return MatchingMetrics()


@pytest.fixture
def matching_config():
    return MatchingConfig()


@pytest.fixture
def push_config():
    return PushConfig(send_timeout_seconds=0.5, max_concurrency=5)


@pytest.fixture
def peanut_butter():
    return FoodItem(id=1, brand="Acme", product_name="Peanut Butter")


@pytest.fixture
def peanut_recall():
    return FoodRecall(
        recall_id="F-0001-2024",
        product_description="Acme Peanut Butter recalled for salmonella",
        classification="Class II",
    )


@pytest.fixture
def space_heater():
    return Product(id=7, brand="Warmly", product_name="Space Heater", model_number="WH-200")


@pytest.fixture
def heater_recall():
    return ProductRecall(
        recall_number="24-101",
        product_name="Warmly Space Heaters",
        description="Model WH-200 space heaters can overheat",
        hazard="The heater can overheat, posing a fire hazard.",
        manufacturer="Warmly Inc",
    )


@pytest.fixture
def civic():
    return Vehicle(id=3, make="Honda", model="Civic", year=2018)


@pytest.fixture
def civic_recall():
    return VehicleRecall(
        campaign_number="18V-123",
        make="HONDA",
        model="CIVIC ",
        year=2018,
        component="AIR BAGS",
        consequence="An airbag that deploys improperly increases the risk of injury.",
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def dispatcher(transport, push_config, metrics):
    return NotificationDispatcher(transport, config=push_config, metrics=metrics)


@pytest.fixture
def controller_factory(storage, dispatcher, matching_config, metrics):
    """Build a MatchingController around the shared storage and dispatcher."""

    def _build(embedder=None, generator=None, config=None):
        return MatchingController(
            storage,
            embedder=embedder,
            generator=generator or FakeGenerator(),
            dispatcher=dispatcher,
            config=config or matching_config,
            metrics=metrics,
        )

    return _build
