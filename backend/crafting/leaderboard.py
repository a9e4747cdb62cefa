from __future__ import annotations

from typing import Iterable

from crafting.store import ContributionAction, ContributionRecord

COUNTED_ACTIONS = {ContributionAction.COLLECTED, ContributionAction.CRAFTED}


def contribution_leaderboard(records: Iterable[ContributionRecord]) -> list[dict]:
    totals: dict[str, dict] = {}
    for record in records:
        if record.action not in COUNTED_ACTIONS:
            continue
        entry = totals.setdefault(
            record.user_id,
            {"user_id": record.user_id, "total_contributions": 0, "collected": 0, "crafted": 0},
        )
        entry["total_contributions"] += record.quantity
        entry[record.action.value] += record.quantity
    return sorted(
        totals.values(),
        key=lambda entry: (-entry["total_contributions"], entry["user_id"]),
    )
