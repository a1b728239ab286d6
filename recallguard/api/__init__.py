from recallguard.api.app import create_app, run_periodic_matching
from recallguard.api.routes import create_router

__all__ = ["create_app", "create_router", "run_periodic_matching"]
