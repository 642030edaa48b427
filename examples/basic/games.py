"""
Functions of the win/loss counter.

The counter lives in a single ``games`` document, created by the first
win or loss. Both mutations return the document as it was before the
update (None on the first call).
"""

from __future__ import annotations

from typing import Any, Optional

from docshape import DatabaseReader, FunctionContext, FunctionRegistry, v

from .schema import schema

functions = FunctionRegistry()


def get_game_data(db: DatabaseReader) -> Optional[dict[str, Any]]:
    return db.query("games").first()


@functions.query(args={}, returns=v.union(v.null(), schema.document_node("games")))
def getGame(ctx: FunctionContext, args: dict[str, Any]) -> Optional[dict[str, Any]]:
    return get_game_data(ctx.db)


@functions.mutation(args={})
def winGame(ctx: FunctionContext, args: dict[str, Any]) -> Optional[dict[str, Any]]:
    game = get_game_data(ctx.db)
    if game is None:
        ctx.db.insert("games", {"win_count": 1, "loss_count": 0})
    else:
        ctx.db.patch(game["_id"], {"win_count": game["win_count"] + 1})
    return game


@functions.mutation(args={})
def lossGame(ctx: FunctionContext, args: dict[str, Any]) -> Optional[dict[str, Any]]:
    game = get_game_data(ctx.db)
    if game is None:
        ctx.db.insert("games", {"win_count": 0, "loss_count": 1})
    else:
        ctx.db.patch(game["_id"], {"loss_count": game["loss_count"] + 1})
    return game
