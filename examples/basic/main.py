"""
Play a session of the win/loss counter.

Usage:
    python -m examples.basic.main win win loss
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from docshape import DocumentStore
from docshape.config import get_settings, setup_logging

from .games import functions
from .schema import schema

logger = logging.getLogger(__name__)

_MUTATIONS = {"win": "winGame", "loss": "lossGame"}


def play(outcomes: list[str], store: DocumentStore) -> Optional[dict]:
    """Record each outcome and return the final game document."""
    for outcome in outcomes:
        functions.call(_MUTATIONS[outcome], {}, store)
    return functions.call("getGame", {}, store)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Win/loss counter")
    parser.add_argument("outcomes", nargs="*", help="win or loss")
    args = parser.parse_args(argv)
    unknown = [o for o in args.outcomes if o not in _MUTATIONS]
    if unknown:
        parser.error(f"unknown outcome(s): {unknown}; expected win or loss")

    setup_logging(get_settings())
    store = DocumentStore(schema)
    game = play(args.outcomes, store)

    if game is None:
        print("No games played yet")
    else:
        print(f"wins: {game['win_count']}  losses: {game['loss_count']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
