"""Model registry repository."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from signal_core.models.dataset import NormStats
from signal_core.models.memory import ModelMeta
from signal_memory.storage.database import Database, ModelRegistryTable

logger = logging.getLogger(__name__)


class ModelRepository:
    """Versioned model metadata keyed by model_id."""

    def __init__(self, db: Database):
        self._db = db

    async def upsert(
        self,
        model_id: str,
        model_name: str,
        config: dict[str, Any],
        metrics: dict[str, Any],
        norm_stats: NormStats,
        weights_path: str,
    ) -> int:
        """Insert or replace a model; returns the new version.

        version = previous version + 1 (first registration → 1), computed by
        the upsert itself so concurrent registrations never share a version.
        first_registered_at is set once; last_registered_at on every call.
        """
        t = ModelRegistryTable
        now = datetime.now(timezone.utc)
        stmt = self._db.insert(t).values(
            model_id=model_id,
            model_name=model_name,
            version=1,
            first_registered_at=now,
            last_registered_at=now,
            config_json=json.dumps(config, sort_keys=True, default=str),
            metrics_json=json.dumps(metrics, sort_keys=True, default=str),
            norm_stats_json=norm_stats.model_dump_json(),
            weights_path=weights_path,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["model_id"],
            set_={
                "model_name": stmt.excluded.model_name,
                "version": t.version + 1,
                "last_registered_at": stmt.excluded.last_registered_at,
                "config_json": stmt.excluded.config_json,
                "metrics_json": stmt.excluded.metrics_json,
                "norm_stats_json": stmt.excluded.norm_stats_json,
                "weights_path": stmt.excluded.weights_path,
            },
        ).returning(t.version)

        async with self._db.session() as session:
            return (await session.execute(stmt)).scalar_one()

    async def get(self, model_id: str) -> ModelMeta | None:
        async with self._db.session() as session:
            row = await session.get(ModelRegistryTable, model_id)
            if row is None:
                return None
            return ModelMeta(
                model_id=row.model_id,
                model_name=row.model_name,
                version=row.version,
                config=json.loads(row.config_json) if row.config_json else {},
                metrics=json.loads(row.metrics_json) if row.metrics_json else {},
                norm_stats=(
                    NormStats.model_validate_json(row.norm_stats_json)
                    if row.norm_stats_json
                    else None
                ),
                weights_path=row.weights_path,
                first_registered_at=row.first_registered_at,
                last_registered_at=row.last_registered_at,
            )
