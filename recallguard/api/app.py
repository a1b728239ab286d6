"""
FastAPI application factory.

create_app() wires storage, providers, the vector index, the dispatcher and
the matching controller from configuration. Every component can be injected,
which is how tests run the app without network providers.

Lifespan:
- startup: rebuild the vector index, start the periodic matching loop when
  MATCHING_SCHEDULE_INTERVAL_SECONDS > 0
- shutdown: stop the loop, drain background dispatches, close HTTP clients
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from recallguard import __version__
from recallguard.api.routes import create_router
from recallguard.config.settings import Config, get_config
from recallguard.controllers.matching_controller import MatchingController
from recallguard.observability.metrics import MatchingMetrics
from recallguard.services.notification_dispatcher import NotificationDispatcher, SubscriptionRegistry
from recallguard.storage.base import RecallStorage
from recallguard.storage.memory import InMemoryStorage
from recallguard.tools.cohere_client import CohereClient
from recallguard.tools.embedding_client import CohereEmbeddingClient, EmbeddingProvider
from recallguard.tools.message_generator import CohereMessageGenerator, TextGenerator
from recallguard.tools.push_transport import PushTransport, WebPushTransport

logger = logging.getLogger(__name__)


async def run_periodic_matching(controller: MatchingController, interval_seconds: float) -> None:
    """Run a matching pass every `interval_seconds` until cancelled."""
    logger.info(f"Periodic matching every {interval_seconds:.0f}s")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await controller.run_matching_pass()
        except Exception as e:
            # Per-item failures are already isolated; this covers storage outages.
            logger.error(f"Scheduled matching pass failed: {e}")


def create_app(
    config: Optional[Config] = None,
    storage: Optional[RecallStorage] = None,
    embedder: Optional[EmbeddingProvider] = None,
    generator: Optional[TextGenerator] = None,
    transport: Optional[PushTransport] = None,
    metrics: Optional[MatchingMetrics] = None,
    registry: Optional[SubscriptionRegistry] = None,
) -> FastAPI:
    """
    Build the RecallGuard API.

    Args:
        config: Application configuration (defaults to get_config()).
        storage: Persistence (defaults to InMemoryStorage).
        embedder: Embedding provider (defaults to Cohere).
        generator: Message generator (defaults to Cohere).
        transport: Push transport (defaults to VAPID Web Push).
        metrics: Prometheus metrics (defaults to a fresh registry).
        registry: Subscription registry (defaults to an empty one).

    Returns:
        Configured FastAPI app.
    """
    config = config or get_config()
    metrics = metrics or MatchingMetrics()
    storage = storage or InMemoryStorage()

    owned_clients = []
    if embedder is None or generator is None:
        cohere = CohereClient(config.cohere)
        owned_clients.append(cohere)
        if not cohere.available:
            logger.warning("COHERE_API_KEY not set: matching runs lexical-only with generic messages")
        embedder = embedder or CohereEmbeddingClient(cohere)
        generator = generator or CohereMessageGenerator(cohere)
    if transport is None:
        transport = WebPushTransport(config.push)

    dispatcher = NotificationDispatcher(
        transport,
        registry=registry or SubscriptionRegistry(),
        config=config.push,
        metrics=metrics,
    )
    controller = MatchingController(
        storage,
        embedder=embedder,
        generator=generator,
        dispatcher=dispatcher,
        config=config.matching,
        metrics=metrics,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await controller.initialize()
        scheduler = None
        if config.matching.schedule_interval_seconds > 0:
            scheduler = asyncio.create_task(
                run_periodic_matching(controller, config.matching.schedule_interval_seconds)
            )
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.cancel()
                await asyncio.gather(scheduler, return_exceptions=True)
            await dispatcher.drain()
            for client in owned_clients:
                await client.close()
            logger.info("RecallGuard API shut down")

    app = FastAPI(
        title="RecallGuard - Recall Matching & Alerting",
        version=__version__,
        description="Matches tracked items against safety recalls and sends push alerts",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.controller = controller
    app.state.dispatcher = dispatcher
    app.state.metrics = metrics

    app.include_router(create_router(controller, dispatcher, config.push))

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "version": __version__,
            "environment": config.environment,
            "index": controller.stats(),
        }

    @app.get("/metrics")
    async def prometheus_metrics():
        return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)

    return app
