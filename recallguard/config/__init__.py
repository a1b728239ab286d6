# Config Package
from recallguard.config.settings import (
    APIConfig,
    CohereConfig,
    Config,
    MatchingConfig,
    PushConfig,
    get_config,
    reload_config,
)

__all__ = [
    "APIConfig",
    "CohereConfig",
    "Config",
    "MatchingConfig",
    "PushConfig",
    "get_config",
    "reload_config",
]
