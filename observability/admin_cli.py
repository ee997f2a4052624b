"""Operator CLI: migrate the store, inspect scores and reset enrichment."""
from __future__ import annotations

import argparse
import json

from services.enrichment_cache import get_enrichment_cache
from services.leaderboard import query_leaderboard
from storage.migrate import migrate
from storage.scores import get_score


def tail_leaderboard(limit: int = 20, range_: str = "all") -> None:
    page = query_leaderboard(range_=range_, limit=limit)
    print(f"{page.total_matched} matched / {page.total_stored} stored (range={page.range_used})")
    for rank, entry in enumerate(page.entries, start=1):
        who = entry.trainee_name_short or "-"
        scenario = f"{entry.conference_name or entry.conference_id or '-'} / {entry.persona_display_name or entry.persona_id or '-'}"
        print(f"{rank:>3}. [{entry.created_at}] {entry.score:>3} {entry.grade} {who} {scenario} token={entry.token}")


def show_score(token: str) -> int:
    record = get_score(token)
    if record is None:
        print(f"No score stored for token {token}")
        return 1
    print(json.dumps(record.model_dump(mode="json"), indent=2, ensure_ascii=False))
    return 0


def invalidate(conference_id: str | None, persona_id: str | None) -> None:
    removed = get_enrichment_cache().invalidate(conference_id, persona_id)
    print(f"Removed {removed} enrichment entr{'y' if removed == 1 else 'ies'}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--migrate", action="store_true", help="Create the key/value schema")
    parser.add_argument("--tail-leaderboard", type=int, metavar="N", help="Show the top N leaderboard entries")
    parser.add_argument("--range", default="all", choices=["24h", "7d", "30d", "all"], help="Leaderboard window")
    parser.add_argument("--score", metavar="TOKEN", help="Print the stored score for an invite token")
    parser.add_argument("--invalidate-enrichment", action="store_true", help="Drop cached enrichment")
    parser.add_argument("--conference-id", help="Limit invalidation to one conference")
    parser.add_argument("--persona-id", help="Limit invalidation to one persona (needs --conference-id)")
    args = parser.parse_args(argv)

    status = 0
    if args.migrate:
        migrate()
    if args.tail_leaderboard:
        tail_leaderboard(args.tail_leaderboard, args.range)
    if args.score:
        status = show_score(args.score)
    if args.invalidate_enrichment:
        invalidate(args.conference_id, args.persona_id)
    return status


if __name__ == "__main__":
    raise SystemExit(main())
