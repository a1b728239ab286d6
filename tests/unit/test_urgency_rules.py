"""
Unit Tests for Urgency Rules and Match Policy
"""

import pytest

from recallguard.config.settings import MatchingConfig
from recallguard.models.alert import Urgency
from recallguard.models.recall import FoodRecall, ProductRecall, VehicleRecall
from recallguard.policies.match_policy import MatchPolicy
from recallguard.rules.urgency_rules import UrgencyRules


@pytest.fixture
def rules():
    return UrgencyRules()


# ============================================================================
# Food
# ============================================================================

@pytest.mark.parametrize("classification,expected", [
    ("Class I", Urgency.HIGH),
    ("Class II", Urgency.MEDIUM),
    ("Class III", Urgency.LOW),
    ("class ii", Urgency.MEDIUM),
    ("Not Yet Classified", Urgency.LOW),
    (None, Urgency.LOW),
])
def test_food_classification(rules, classification, expected):
    recall = FoodRecall(recall_id="F1", product_description="x", classification=classification)
    assert rules.classify(recall) == expected


# ============================================================================
# Product
# ============================================================================

@pytest.mark.parametrize("hazard,expected", [
    ("Fire hazard from overheating battery", Urgency.HIGH),
    ("Risk of serious injury", Urgency.HIGH),
    ("Entrapment can lead to death", Urgency.HIGH),
    ("Laceration hazard", Urgency.MEDIUM),
    (None, Urgency.MEDIUM),
])
def test_product_hazard(rules, hazard, expected):
    recall = ProductRecall(recall_number="P1", hazard=hazard)
    assert rules.classify(recall) == expected


# ============================================================================
# Vehicle
# ============================================================================

@pytest.mark.parametrize("consequence,expected", [
    ("Increases the risk of a crash", Urgency.HIGH),
    ("The AIRBAG may not deploy", Urgency.HIGH),
    ("Engine stall while driving", Urgency.MEDIUM),
    ("Possible display malfunction", Urgency.MEDIUM),
    ("Label may be missing", Urgency.LOW),
    (None, Urgency.LOW),
])
def test_vehicle_consequence(rules, consequence, expected):
    recall = VehicleRecall(campaign_number="V1", consequence=consequence)
    assert rules.classify(recall) == expected


def test_keywords_are_configurable():
    rules = UrgencyRules(MatchingConfig(high_hazard_keywords=["choking"]))

    assert rules.classify(ProductRecall(recall_number="P1", hazard="Choking hazard")) == Urgency.HIGH
    assert rules.classify(ProductRecall(recall_number="P2", hazard="Fire hazard")) == Urgency.MEDIUM


# ============================================================================
# Match policy
# ============================================================================

class TestMatchPolicy:

    def test_defaults(self):
        policy = MatchPolicy.from_config(MatchingConfig())
        assert policy.threshold("food") == 0.40
        assert policy.threshold("product") == 0.65
        assert policy.threshold("vehicle") is None

    def test_inclusive_boundaries(self):
        policy = MatchPolicy()
        assert policy.accepts("food", 0.40)
        assert not policy.accepts("food", 0.399999)
        assert policy.accepts("product", 0.65)
        assert not policy.accepts("product", 0.649999)

    def test_vehicle_always_accepted(self):
        assert MatchPolicy().accepts("vehicle", 0.0)

    def test_thresholds_from_config(self):
        policy = MatchPolicy.from_config(MatchingConfig(food_threshold=0.5, product_threshold=0.8))
        assert not policy.accepts("food", 0.45)
        assert policy.accepts("product", 0.8)
