"""Model registry: versioned metadata including frozen normalization stats."""

from __future__ import annotations

import logging
from typing import Any

from signal_core.models.dataset import NormStats
from signal_core.models.memory import ModelMeta
from signal_memory.storage.database import Database
from signal_memory.storage.model_repo import ModelRepository

logger = logging.getLogger(__name__)


class ModelRegistry:
    def __init__(self, db: Database):
        self._models = ModelRepository(db)

    async def register_model(
        self,
        model_id: str,
        model_name: str,
        config: dict[str, Any],
        metrics: dict[str, Any],
        norm_stats: NormStats,
        weights_path: str,
    ) -> int:
        """Register or re-register a model. Returns its new version."""
        version = await self._models.upsert(
            model_id, model_name, config, metrics, norm_stats, weights_path
        )
        logger.info(f"Registered {model_id} ({model_name}) v{version} → {weights_path}")
        return version

    async def get_model_meta(self, model_id: str) -> ModelMeta | None:
        """Registry entry with norm_stats and weights_path, or None."""
        return await self._models.get(model_id)
