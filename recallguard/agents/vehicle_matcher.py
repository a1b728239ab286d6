"""
Vehicle Matcher Agent - Exact Campaign Lookup

Vehicle recall feeds are already keyed by make, model and year, so vehicles
skip retrieval and reranking: every campaign for the normalized
(make, model, year) is a match with score 1.0. Alerts go through the same
DecisionEngine.create_alert path as food and products, so deduplication,
urgency and messages behave identically.
"""

import logging

from recallguard.agents.decision_engine import DecisionEngine
from recallguard.models.alert import Alert
from recallguard.models.item import Vehicle
from recallguard.storage.base import RecallStorage

logger = logging.getLogger(__name__)

EXACT_MATCH_SCORE = 1.0


class VehicleMatcher:
    """Agent matching vehicles to NHTSA campaigns by equality."""

    AGENT_NAME = "VehicleMatcher"

    def __init__(self, storage: RecallStorage, decision_engine: DecisionEngine):
        self._storage = storage
        self._engine = decision_engine

    async def match(self, vehicle: Vehicle) -> list[Alert]:
        recalls = await self._storage.find_vehicle_recalls(vehicle.make, vehicle.model, vehicle.year)
        if not recalls:
            logger.debug(f"[{self.AGENT_NAME}] No campaigns for {vehicle.query_text}")
            return []

        created = []
        for recall in recalls:
            alert = await self._engine.create_alert(vehicle, recall, EXACT_MATCH_SCORE)
            if alert is not None:
                created.append(alert)

        logger.info(
            f"[{self.AGENT_NAME}] Vehicle {vehicle.id}: {len(recalls)} campaigns, {len(created)} new alerts"
        )
        return created
