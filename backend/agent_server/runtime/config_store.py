"""
Config Store - the query configuration posted through /config.

The agent session reads it exactly once, at creation. Later ``set`` calls
replace the stored snapshot but never reach a running session.
"""

import copy
from typing import Any

from .types import QueryConfig
from ...utils.logger import get_logger

logger = get_logger(__name__)


class ConfigStore:
    """Holds the current QueryConfig for one session context."""

    def __init__(self, initial: QueryConfig = None):
        self._config = initial or QueryConfig()

    def set(self, data: Any) -> QueryConfig:
        """
        Replace the whole configuration (no merge with the previous one).

        Raises:
            ConfigInvalid: if ``data`` is not a JSON object
        """
        config = QueryConfig.from_dict(data)
        self._config = config
        logger.info(
            "Query configuration replaced",
            keys=sorted(config.to_dict().keys()),
        )
        return config

    def get(self) -> QueryConfig:
        """Current configuration (inspection only)."""
        return self._config

    def snapshot(self) -> QueryConfig:
        """Independent copy taken when the session is created."""
        return copy.deepcopy(self._config)
