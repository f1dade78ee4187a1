"""
Semantic test: engine configuration loading.

Invariants:
- Defaults match the dashboard's behaviour (batch limit 100, batched
  dispatch, cancellation from every non-terminal status).
- Unknown keys are rejected.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from merchant_sync.core.config.engine_config import BulkConfig, EngineConfig
from merchant_sync.core.domain.order_status import FulfillmentMethod, OrderStatus


def test_defaults() -> None:
    cfg = EngineConfig.from_json_obj({"scope": "merchant-1"})

    assert cfg.bulk == BulkConfig()
    assert cfg.bulk.max_batch_size == 100
    assert cfg.bulk.dispatch_mode == "batched"
    assert cfg.transition_policy.allows_cancellation_from(OrderStatus.OUT_FOR_FULFILLMENT)
    assert cfg.transition_policy.allows_direct_completion(FulfillmentMethod.PICKUP)
    assert not cfg.transition_policy.allows_direct_completion(FulfillmentMethod.DELIVERY)


def test_from_json_file(tmp_path: Path) -> None:
    path = tmp_path / "engine.json"
    path.write_text(
        json.dumps(
            {
                "scope": "merchant-2",
                "transition_policy": {
                    "cancellable_from": ["PENDING", "CONFIRMED"],
                    "direct_completion_methods": ["PICKUP", "DELIVERY"],
                },
                "bulk": {"max_batch_size": 25, "dispatch_mode": "sequential"},
            }
        ),
        encoding="utf-8",
    )

    cfg = EngineConfig.from_json_file(path)

    assert cfg.scope == "merchant-2"
    assert cfg.bulk.max_batch_size == 25
    assert cfg.bulk.dispatch_mode == "sequential"
    assert not cfg.transition_policy.allows_cancellation_from(OrderStatus.PREPARING)
    assert cfg.transition_policy.allows_direct_completion(FulfillmentMethod.DELIVERY)


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        EngineConfig.from_json_file(tmp_path / "missing.json")


@pytest.mark.parametrize(
    "cfg_obj",
    [
        {},
        {"scope": ""},
        {"scope": "m", "unexpected": 1},
        {"scope": "m", "bulk": {"max_batch_size": 0}},
        {"scope": "m", "bulk": {"dispatch_mode": "parallel"}},
        {"scope": "m", "bulk": {"retries": 3}},
    ],
)
def test_invalid_config_rejected(cfg_obj: dict) -> None:
    with pytest.raises(ValidationError):
        EngineConfig.from_json_obj(cfg_obj)
