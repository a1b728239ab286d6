"""
HTTP routes for push subscriptions, matching passes and alert actions.

Routes are built around injected components (create_router) rather than
module globals, so tests can mount them on a fresh app.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, HTTPException, Query
from pydantic import ValidationError

from recallguard.config.settings import PushConfig
from recallguard.controllers.matching_controller import MatchingController
from recallguard.models.item import ItemCategory
from recallguard.models.push import PushSubscription
from recallguard.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


def _parse_category(category: Optional[str]) -> Optional[ItemCategory]:
    if category is None:
        return None
    try:
        return ItemCategory(category)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown category: {category}")


def create_router(
    controller: MatchingController,
    dispatcher: NotificationDispatcher,
    push_config: Optional[PushConfig] = None,
) -> APIRouter:
    """Build the /api router bound to the given components."""
    push_config = push_config or PushConfig()
    router = APIRouter(prefix="/api")

    # --- Push subscriptions ---

    @router.post("/push/subscribe")
    async def subscribe(body: Dict[str, Any] = Body(...)):
        keys = body.get("keys")
        if not isinstance(keys, dict):
            keys = {}
        if not body.get("endpoint") or not keys.get("p256dh") or not keys.get("auth"):
            raise HTTPException(status_code=400, detail="Invalid subscription")
        try:
            subscription = PushSubscription.model_validate(body)
        except ValidationError:
            raise HTTPException(status_code=400, detail="Invalid subscription")

        dispatcher.subscribe(subscription)
        return {"success": True}

    @router.post("/push/unsubscribe")
    async def unsubscribe(body: Dict[str, Any] = Body(...)):
        endpoint = body.get("endpoint")
        if endpoint:
            dispatcher.unsubscribe(endpoint)
        return {"success": True}

    @router.get("/push/status")
    async def push_status():
        return {
            "pushEnabled": len(dispatcher.registry) > 0,
            "vapidConfigured": push_config.vapid_configured,
            "vapidPublicKey": push_config.vapid_public_key,
        }

    # --- Matching ---

    @router.post("/matching/run")
    async def run_matching(category: Optional[str] = Query(None)):
        parsed = _parse_category(category)
        report = await controller.run_matching_pass(parsed)
        return report.to_dict()

    @router.get("/matching/stats")
    async def matching_stats():
        return {
            "index": controller.stats(),
            "subscriptions": len(dispatcher.registry),
            "pendingDispatches": dispatcher.pending,
        }

    # --- Alerts ---

    @router.get("/alerts")
    async def list_alerts(category: Optional[str] = Query(None)):
        alerts = await controller.storage.list_alerts(_parse_category(category))
        return [a.model_dump(mode="json") for a in alerts]

    @router.post("/alerts/{alert_id}/dismiss")
    async def dismiss_alert(alert_id: UUID):
        alert = await controller.storage.dismiss_alert(alert_id)
        if alert is None:
            raise HTTPException(status_code=404, detail="Alert not found")
        return alert.model_dump(mode="json")

    @router.post("/alerts/{alert_id}/resolve")
    async def resolve_alert(alert_id: UUID, body: Optional[Dict[str, Any]] = Body(None)):
        resolved = bool((body or {}).get("resolved", True))
        alert = await controller.storage.resolve_alert(alert_id, resolved)
        if alert is None:
            raise HTTPException(status_code=404, detail="Alert not found")
        return alert.model_dump(mode="json")

    return router
