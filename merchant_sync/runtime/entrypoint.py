from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from merchant_sync.core.config.engine_config import EngineConfig
from merchant_sync.core.domain.order_status import (
    DEFAULT_TRANSITION_POLICY,
    OrderStatus,
    TransitionPolicy,
    allowed_next_statuses,
    is_transition_legal,
)

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger with a terse format suitable for CLI output."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )


def _load_policy(config_path: Path | None) -> TransitionPolicy:
    if config_path is None:
        return DEFAULT_TRANSITION_POLICY
    cfg = EngineConfig.from_json_file(config_path)
    LOGGER.info("Loaded engine config", extra={"scope": cfg.scope, "path": str(config_path)})
    return cfg.transition_policy


def transition_table(policy: TransitionPolicy) -> dict[str, Any]:
    """Legal targets per status, for both direct-completion flag values."""
    table: dict[str, Any] = {}
    for flag_name, flag in (("standard", False), ("direct_completion", True)):
        table[flag_name] = {
            status.value: [s.value for s in allowed_next_statuses(status, flag, policy=policy)]
            for status in OrderStatus
        }
    return table


def _parse_status(raw: str) -> OrderStatus:
    try:
        return OrderStatus(raw.upper())
    except ValueError:
        valid = ", ".join(s.value for s in OrderStatus)
        raise argparse.ArgumentTypeError(f"unknown status {raw!r} (expected one of: {valid})") from None


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="merchant-sync",
        description="Inspect the order lifecycle guard.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to an engine JSON config (transition policy overrides).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("transitions", help="Print the legal transition table as JSON.")

    check = sub.add_parser("check", help="Check whether one transition is legal.")
    check.add_argument("from_status", type=_parse_status)
    check.add_argument("to_status", type=_parse_status)
    check.add_argument(
        "--direct-completion",
        action="store_true",
        help="The order's fulfillment mode permits READY -> COMPLETED.",
    )

    args = parser.parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    policy = _load_policy(args.config)

    if args.command == "transitions":
        print(json.dumps(transition_table(policy), indent=2))
        return 0

    legal = is_transition_legal(
        args.from_status,
        args.to_status,
        args.direct_completion,
        policy=policy,
    )
    print("legal" if legal else "illegal")
    return 0 if legal else 1


if __name__ == "__main__":
    sys.exit(main())
