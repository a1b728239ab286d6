"""
Unit Tests for Decision Engine

Tests:
- Threshold boundaries per category
- Rerank fallback to retrieval scores
- Duplicate handling (existence check and storage constraint)
- Message fallback
"""

import pytest
from unittest.mock import AsyncMock

from recallguard.agents.decision_engine import DecisionEngine
from recallguard.models.alert import Alert, Urgency
from recallguard.models.embedding import Candidate, CandidateSource, VectorEntry
from recallguard.models.item import ItemCategory
from recallguard.tools.message_generator import FALLBACK_MESSAGES
from recallguard.utils.error_handling import DuplicateAlertError
from tests.fakes import FakeEmbedder, FakeGenerator


def candidate(recall_id: str, text: str, score: float = 0.5) -> Candidate:
    return Candidate(
        entry=VectorEntry(id=recall_id, text=text),
        score=score,
        source=CandidateSource.DENSE,
    )


# ============================================================================
# Thresholds
# ============================================================================

class TestThresholds:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("score,accepted", [
        (0.40, True),
        (0.399999, False),
        (0.95, True),
    ])
    async def test_food_threshold_boundary(self, storage, peanut_butter, peanut_recall, score, accepted):
        await storage.upsert_recalls([peanut_recall])
        text = peanut_recall.document_text
        engine = DecisionEngine(storage, FakeEmbedder(rerank_scores={text: score}), FakeGenerator())

        alerts = await engine.decide(peanut_butter, [candidate(peanut_recall.recall_id, text)])

        assert (len(alerts) == 1) is accepted

    @pytest.mark.asyncio
    @pytest.mark.parametrize("score,accepted", [
        (0.65, True),
        (0.649999, False),
    ])
    async def test_product_threshold_boundary(self, storage, space_heater, heater_recall, score, accepted):
        await storage.upsert_recalls([heater_recall])
        text = heater_recall.document_text
        engine = DecisionEngine(storage, FakeEmbedder(rerank_scores={text: score}), FakeGenerator())

        alerts = await engine.decide(space_heater, [candidate(heater_recall.recall_number, text)])

        assert (len(alerts) == 1) is accepted


# ============================================================================
# Ranking
# ============================================================================

class TestRanking:

    @pytest.mark.asyncio
    async def test_empty_candidates(self, storage, peanut_butter):
        embedder = FakeEmbedder()
        engine = DecisionEngine(storage, embedder)

        assert await engine.decide(peanut_butter, []) == []
        assert embedder.rerank_calls == []

    @pytest.mark.asyncio
    async def test_rerank_uses_short_query_and_top_n(self, storage, peanut_butter):
        embedder = FakeEmbedder()
        engine = DecisionEngine(storage, embedder)
        candidates = [candidate(f"R{i}", f"text {i}") for i in range(12)]

        ranked = await engine.rank(peanut_butter, candidates)

        query, documents, top_n = embedder.rerank_calls[0]
        assert query == "Acme Peanut Butter"
        assert len(documents) == 12
        assert top_n == 10
        assert len(ranked) == 10

    @pytest.mark.asyncio
    async def test_fallback_to_candidate_scores(self, storage, peanut_butter, metrics):
        engine = DecisionEngine(storage, FakeEmbedder(rerank_available=False), metrics=metrics)
        candidates = [candidate(f"R{i}", f"text {i}", score=i / 20) for i in range(12)]

        ranked = await engine.rank(peanut_butter, candidates)

        assert len(ranked) == 10
        assert [c.recall_id for c, _ in ranked[:2]] == ["R11", "R10"]
        assert [s for _, s in ranked] == sorted((s for _, s in ranked), reverse=True)
        assert metrics.value("recallguard_provider_fallbacks_total", {"stage": "rerank"}) == 1

    @pytest.mark.asyncio
    async def test_unexpected_rerank_error_falls_back(self, storage, peanut_butter, peanut_recall, metrics):
        await storage.upsert_recalls([peanut_recall])
        embedder = AsyncMock()
        embedder.rerank.side_effect = RuntimeError("rerank backend exploded")
        engine = DecisionEngine(storage, embedder, FakeGenerator(), metrics=metrics)

        alerts = await engine.decide(
            peanut_butter,
            [candidate(peanut_recall.recall_id, peanut_recall.document_text, score=0.9)],
        )

        assert len(alerts) == 1
        assert alerts[0].score == 0.9
        assert metrics.value("recallguard_provider_fallbacks_total", {"stage": "rerank"}) == 1

    @pytest.mark.asyncio
    async def test_no_embedder_uses_candidate_scores(self, storage, peanut_butter, peanut_recall):
        await storage.upsert_recalls([peanut_recall])
        engine = DecisionEngine(storage, None, FakeGenerator())

        alerts = await engine.decide(
            peanut_butter,
            [candidate(peanut_recall.recall_id, peanut_recall.document_text, score=0.9)],
        )

        assert len(alerts) == 1
        assert alerts[0].score == 0.9


# ============================================================================
# Alert creation
# ============================================================================

class TestAlertCreation:

    @pytest.mark.asyncio
    async def test_creates_alert_with_urgency_and_message(self, storage, peanut_butter, peanut_recall, metrics):
        await storage.upsert_recalls([peanut_recall])
        text = peanut_recall.document_text
        engine = DecisionEngine(
            storage,
            FakeEmbedder(rerank_scores={text: 0.55}),
            FakeGenerator("Check your pantry."),
            metrics=metrics,
        )

        [alert] = await engine.decide(peanut_butter, [candidate(peanut_recall.recall_id, text)])

        assert alert.category == ItemCategory.FOOD
        assert alert.item_id == 1
        assert alert.recall_id == "F-0001-2024"
        assert alert.score == 0.55
        assert alert.urgency == Urgency.MEDIUM
        assert alert.message == "Check your pantry."
        assert await storage.alert_exists("food", 1, "F-0001-2024")
        assert metrics.value(
            "recallguard_alerts_created_total", {"category": "food", "urgency": "MEDIUM"}
        ) == 1

    @pytest.mark.asyncio
    async def test_existing_alert_is_skipped(self, storage, peanut_butter, peanut_recall):
        await storage.upsert_recalls([peanut_recall])
        text = peanut_recall.document_text
        generator = FakeGenerator()
        engine = DecisionEngine(storage, FakeEmbedder(rerank_scores={text: 0.9}), generator)
        candidates = [candidate(peanut_recall.recall_id, text)]

        first = await engine.decide(peanut_butter, candidates)
        second = await engine.decide(peanut_butter, candidates)

        assert len(first) == 1
        assert second == []
        assert generator.calls == 1

    @pytest.mark.asyncio
    async def test_storage_uniqueness_violation_is_skipped(self, peanut_butter, peanut_recall):
        storage = AsyncMock()
        storage.get_recall.return_value = peanut_recall
        storage.alert_exists.return_value = False
        storage.create_alert.side_effect = DuplicateAlertError("food", 1, peanut_recall.recall_id)
        engine = DecisionEngine(storage, FakeEmbedder(default_score=0.9), FakeGenerator())

        alerts = await engine.decide(peanut_butter, [candidate(peanut_recall.recall_id, "text")])

        assert alerts == []
        storage.create_alert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_generator_failure_uses_fallback_message(self, storage, peanut_butter, peanut_recall, metrics):
        await storage.upsert_recalls([peanut_recall])
        engine = DecisionEngine(
            storage,
            FakeEmbedder(default_score=0.9),
            FakeGenerator(fail=True),
            metrics=metrics,
        )

        [alert] = await engine.decide(peanut_butter, [candidate(peanut_recall.recall_id, "text")])

        assert alert.message == FALLBACK_MESSAGES[ItemCategory.FOOD]
        assert metrics.value("recallguard_provider_fallbacks_total", {"stage": "generate"}) == 1

    @pytest.mark.asyncio
    async def test_recall_missing_from_storage_is_skipped(self, storage, peanut_butter):
        engine = DecisionEngine(storage, FakeEmbedder(default_score=0.9), FakeGenerator())

        alerts = await engine.decide(peanut_butter, [candidate("GHOST", "text")])

        assert alerts == []
        assert await storage.list_alerts() == []

    @pytest.mark.asyncio
    async def test_existing_alert_checked_before_message_generation(self, storage, peanut_butter, peanut_recall):
        await storage.upsert_recalls([peanut_recall])
        await storage.create_alert(
            Alert(category="food", item_id=1, recall_id=peanut_recall.recall_id, score=0.5, urgency=Urgency.LOW)
        )
        generator = FakeGenerator()
        engine = DecisionEngine(storage, FakeEmbedder(default_score=0.9), generator)

        assert await engine.decide(peanut_butter, [candidate(peanut_recall.recall_id, "text")]) == []
        assert generator.calls == 0
