"""Engine configuration model for the consistency engine."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from merchant_sync.core.domain.order_status import TransitionPolicy


class BulkConfig(BaseModel):
    """Bulk action limits and dispatch mode.

    - max_batch_size: selections above this size are refused locally
    - dispatch_mode: "batched" sends one remote call for the whole batch,
      "sequential" sends one call per record inside the same mutation
    - clear_selection_on_export: whether a successful export consumes the selection
    """

    max_batch_size: int = Field(default=100, ge=1, le=1000)
    dispatch_mode: Literal["batched", "sequential"] = "batched"
    clear_selection_on_export: bool = False

    model_config = ConfigDict(extra="forbid")


class EngineConfig(BaseModel):
    """Structured configuration for one dashboard scope (e.g. one merchant)."""

    scope: str = Field(..., min_length=1)

    transition_policy: TransitionPolicy = Field(default_factory=TransitionPolicy)
    bulk: BulkConfig = Field(default_factory=BulkConfig)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, cfg_obj: dict[str, Any]) -> EngineConfig:
        """Create an EngineConfig instance from a JSON-compatible object."""
        return cls.model_validate(cfg_obj)

    @classmethod
    def from_json_file(cls, path: str | Path) -> EngineConfig:
        """Load an EngineConfig from a JSON file on disk."""
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(cfg_path)
        return cls.from_json_obj(json.loads(cfg_path.read_text(encoding="utf-8")))
