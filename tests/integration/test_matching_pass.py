"""
Integration tests for matching passes: storage, index, retriever, decision
engine and dispatcher wired together through MatchingController.
"""

import json

import pytest

from recallguard.models.alert import Urgency
from recallguard.models.item import FoodItem, Product
from recallguard.models.recall import FoodRecall, ProductRecall, VehicleRecall
from recallguard.utils.logging_context import LoggingContext
from tests.fakes import FakeEmbedder, FakeTransport, make_subscription


async def seed(storage, items=(), recalls=()):
    for item in items:
        await storage.add_tracked_item(item)
    await storage.upsert_recalls(list(recalls))


def alert_keys(alerts):
    return sorted(a.dedup_key for a in alerts)


# ============================================================================
# End-to-end
# ============================================================================

class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_acme_peanut_butter(self, storage, controller_factory, dispatcher, transport,
                                      peanut_butter, peanut_recall):
        await seed(storage, [peanut_butter], [peanut_recall])
        dispatcher.subscribe(make_subscription("https://push.example/device"))
        embedder = FakeEmbedder(rerank_scores={peanut_recall.document_text: 0.55})
        controller = controller_factory(embedder=embedder)

        report = await controller.run_matching_pass()
        await dispatcher.drain()

        assert report.alerts_created == 1
        alert = report.alerts[0]
        assert alert.urgency == Urgency.MEDIUM
        assert alert.score == 0.55
        assert len(transport.sent) == 1
        payload = json.loads(transport.sent[0][1])
        assert payload["tag"] == f"food-alert-{peanut_butter.id}-{peanut_recall.recall_id}"
        assert payload["title"] == "Food Recall Alert"
        assert payload["body"].startswith("Acme Peanut Butter: ")

    @pytest.mark.asyncio
    async def test_provider_unavailable_still_matches_lexically(self, storage, controller_factory,
                                                               peanut_butter, peanut_recall, metrics):
        await seed(storage, [peanut_butter], [peanut_recall])
        controller = controller_factory(embedder=FakeEmbedder(available=False, rerank_available=False))

        report = await controller.run_matching_pass("food")

        # lexical prior 0.9 clears the 0.40 food threshold
        assert report.alerts_created == 1
        assert report.alerts[0].score == 0.9
        assert metrics.value("recallguard_provider_fallbacks_total", {"stage": "rerank"}) == 1

    @pytest.mark.asyncio
    async def test_provider_recovery_after_cold_start(self, storage, controller_factory,
                                                      peanut_butter, peanut_recall):
        await seed(storage, [peanut_butter], [peanut_recall])
        embedder = FakeEmbedder(available=False, rerank_available=False, vectors={
            peanut_recall.document_text: [0.0, 1.0, 0.0],
            peanut_butter.query_text: [0.0, 1.0, 0.0],
        })
        controller = controller_factory(embedder=embedder)
        await controller.initialize()
        assert controller.index.get("food", peanut_recall.recall_id).embedding == []

        embedder.available = True
        report = await controller.run_matching_pass("food")

        assert controller.index.get("food", peanut_recall.recall_id).embedding == [0.0, 1.0, 0.0]
        assert report.alerts_created == 1

    @pytest.mark.asyncio
    async def test_index_recalls_retries_vectorless_entries(self, storage, controller_factory, peanut_recall):
        embedder = FakeEmbedder(available=False)
        controller = controller_factory(embedder=embedder)
        await controller.initialize()
        await controller.index_recalls([peanut_recall])

        embedder.available = True
        await controller.index_recalls([peanut_recall])

        assert controller.index.missing_vectors() == []

    @pytest.mark.asyncio
    async def test_run_id_does_not_outlive_pass(self, storage, controller_factory):
        controller = controller_factory(embedder=None)

        report = await controller.run_matching_pass()

        assert report.run_id
        assert LoggingContext.get_run_id() == ""

    @pytest.mark.asyncio
    async def test_product_model_number_match(self, storage, controller_factory, space_heater, heater_recall):
        await seed(storage, [space_heater], [heater_recall])
        controller = controller_factory(embedder=None)

        report = await controller.run_matching_pass("product")

        [alert] = report.alerts
        assert alert.recall_id == "24-101"
        assert alert.score == 0.95
        assert alert.urgency == Urgency.HIGH

    @pytest.mark.asyncio
    async def test_vehicle_campaign_match(self, storage, controller_factory, dispatcher, transport,
                                          civic, civic_recall):
        unrelated = VehicleRecall(campaign_number="18V-999", make="Honda", model="Accord", year=2018)
        await seed(storage, [civic], [civic_recall, unrelated])
        dispatcher.subscribe(make_subscription("https://push.example/car"))
        embedder = FakeEmbedder()
        controller = controller_factory(embedder=embedder)

        report = await controller.run_matching_pass("vehicle")
        await dispatcher.drain()

        [alert] = report.alerts
        assert alert.recall_id == "18V-123"
        assert alert.score == 1.0
        assert alert.urgency == Urgency.HIGH
        assert embedder.rerank_calls == []
        payload = json.loads(transport.sent[0][1])
        assert payload["url"] == "/vehicles"
        assert payload["tag"] == "vehicle-alert-3-18V-123"


# ============================================================================
# Idempotence
# ============================================================================

class TestIdempotence:

    @pytest.mark.asyncio
    async def test_second_pass_creates_nothing(self, storage, controller_factory, dispatcher, transport,
                                               peanut_butter, peanut_recall):
        other = FoodItem(id=2, brand="Acme", product_name="Peanut Butter Crunchy")
        await seed(storage, [peanut_butter, other], [peanut_recall])
        dispatcher.subscribe(make_subscription("https://push.example/device"))
        controller = controller_factory(embedder=FakeEmbedder(default_score=0.7))

        first = await controller.run_matching_pass()
        before = alert_keys(await storage.list_alerts())
        second = await controller.run_matching_pass()
        await dispatcher.drain()

        assert first.alerts_created == 2
        assert second.alerts_created == 0
        assert alert_keys(await storage.list_alerts()) == before
        assert len(transport.sent) == 2

    @pytest.mark.asyncio
    async def test_dismissed_alert_is_not_recreated(self, storage, controller_factory, peanut_butter, peanut_recall):
        await seed(storage, [peanut_butter], [peanut_recall])
        controller = controller_factory(embedder=FakeEmbedder(default_score=0.7))

        [alert] = (await controller.run_matching_pass()).alerts
        await storage.dismiss_alert(alert.alert_id)
        second = await controller.run_matching_pass()

        assert second.alerts_created == 0
        alerts = await storage.list_alerts()
        assert len(alerts) == 1
        assert alerts[0].is_dismissed is True

    @pytest.mark.asyncio
    async def test_inactive_items_are_skipped(self, storage, controller_factory, peanut_recall):
        await seed(storage, [FoodItem(id=5, brand="Acme", product_name="Peanut Butter", is_active=False)],
                   [peanut_recall])
        controller = controller_factory(embedder=FakeEmbedder(default_score=0.9))

        report = await controller.run_matching_pass()

        assert report.items_processed == 0
        assert report.alerts_created == 0


# ============================================================================
# Isolation and concurrency
# ============================================================================

class FailingForItemEmbedder(FakeEmbedder):
    """Raises an unexpected error while reranking for one item's query."""

    def __init__(self, failing_query: str, **kwargs):
        super().__init__(**kwargs)
        self.failing_query = failing_query

    async def rerank(self, query, documents, top_n):
        if query == self.failing_query:
            raise RuntimeError("unexpected provider payload")
        return await super().rerank(query, documents, top_n)


class TestIsolation:

    @pytest.mark.asyncio
    async def test_one_failing_item_does_not_abort_pass(self, storage, controller_factory, peanut_recall, metrics):
        good = FoodItem(id=1, brand="Acme", product_name="Peanut Butter")
        bad = FoodItem(id=2, brand="Acme", product_name="Peanut Butter Smooth")
        await seed(storage, [good, bad], [peanut_recall])
        embedder = FailingForItemEmbedder("Acme Peanut Butter Smooth", default_score=0.8)
        controller = controller_factory(embedder=embedder)

        report = await controller.run_matching_pass()

        assert report.items_processed == 1
        assert report.items_failed == 1
        assert "food:2" in report.failures
        assert [a.item_id for a in report.alerts] == [1]
        assert metrics.value("recallguard_items_matched_total", {"category": "food", "status": "failed"}) == 1

    @pytest.mark.asyncio
    async def test_many_items_under_concurrency_limit(self, storage, controller_factory, matching_config):
        recalls = [FoodRecall(recall_id=f"R{i}", product_description=f"Brand{i} Cookies") for i in range(10)]
        items = [FoodItem(id=i, brand=f"Brand{i}", product_name="Cookies") for i in range(10)]
        await seed(storage, items, recalls)
        config = matching_config.model_copy(update={"max_concurrency": 2})
        controller = controller_factory(embedder=FakeEmbedder(available=False, rerank_available=False), config=config)

        report = await controller.run_matching_pass("food")

        assert report.items_processed == 10
        assert sorted((a.item_id, a.recall_id) for a in report.alerts) == [(i, f"R{i}") for i in range(10)]


# ============================================================================
# Ingestion hooks
# ============================================================================

class TestIngestion:

    @pytest.mark.asyncio
    async def test_index_recalls_is_idempotent(self, storage, controller_factory, peanut_recall):
        embedder = FakeEmbedder()
        controller = controller_factory(embedder=embedder)
        await controller.initialize()

        assert await controller.index_recalls([peanut_recall]) == 1
        assert await controller.index_recalls([peanut_recall]) == 0
        assert controller.stats()["food"]["recalls"] == 1
        assert len(embedder.embed_calls) == 1

    @pytest.mark.asyncio
    async def test_new_recall_matches_on_next_pass(self, storage, controller_factory, peanut_butter, peanut_recall):
        await seed(storage, [peanut_butter])
        controller = controller_factory(embedder=FakeEmbedder(default_score=0.6))
        assert (await controller.run_matching_pass()).alerts_created == 0

        await controller.index_recalls([peanut_recall])

        assert (await controller.run_matching_pass()).alerts_created == 1

    @pytest.mark.asyncio
    async def test_remove_item_cascades(self, storage, controller_factory, peanut_butter, peanut_recall):
        controller = controller_factory(embedder=FakeEmbedder(default_score=0.6, vectors={
            peanut_butter.query_text: [1.0, 0.0, 0.0],
        }))
        await controller.initialize()
        await controller.index_items([peanut_butter])
        await controller.index_recalls([peanut_recall])
        await controller.run_matching_pass()

        assert await controller.remove_item("food", peanut_butter.id) is True

        assert await storage.list_alerts() == []
        assert controller.stats()["food"]["items"] == 0

    @pytest.mark.asyncio
    async def test_product_below_threshold(self, storage, controller_factory):
        item = Product(id=1, brand="Generic", product_name="Desk Lamp")
        recall = ProductRecall(recall_number="P-9", product_name="Desk Lamp", manufacturer="Generic")
        await seed(storage, [item], [recall])
        controller = controller_factory(embedder=FakeEmbedder(default_score=0.6))

        report = await controller.run_matching_pass("product")

        assert report.alerts_created == 0
        assert report.items_processed == 1


@pytest.mark.asyncio
async def test_unsubscribed_device_not_notified(storage, controller_factory, dispatcher, transport,
                                                peanut_butter, peanut_recall):
    await seed(storage, [peanut_butter], [peanut_recall])
    dispatcher.subscribe(make_subscription("https://push.example/a"))
    dispatcher.unsubscribe("https://push.example/a")
    controller = controller_factory(embedder=FakeEmbedder(default_score=0.9))

    await controller.run_matching_pass()
    reports = await dispatcher.drain()

    assert len(reports) == 1
    assert reports[0].outcomes == []
    assert isinstance(transport, FakeTransport) and transport.sent == []
