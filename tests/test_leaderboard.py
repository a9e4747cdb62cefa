from crafting.leaderboard import contribution_leaderboard
from crafting.store import ContributionAction, ContributionRecord


def _record(record_id: int, user: str, qty: int, action: ContributionAction) -> ContributionRecord:
    return ContributionRecord(record_id, 1, 1, user, qty, action)


def test_leaderboard_counts_collects_and_crafts_only() -> None:
    records = [
        _record(1, "steve", 10, ContributionAction.COLLECTED),
        _record(2, "alex", 4, ContributionAction.COLLECTED),
        _record(3, "alex", 1, ContributionAction.CRAFTED),
        _record(4, "steve", 10, ContributionAction.MILESTONE),
        _record(5, "planner", 3, ContributionAction.SAVED),
        _record(6, "alex", 6, ContributionAction.COLLECTED),
    ]

    board = contribution_leaderboard(records)

    assert board == [
        {"user_id": "alex", "total_contributions": 11, "collected": 10, "crafted": 1},
        {"user_id": "steve", "total_contributions": 10, "collected": 10, "crafted": 0},
    ]


def test_leaderboard_ties_break_by_user() -> None:
    records = [
        _record(1, "zed", 2, ContributionAction.COLLECTED),
        _record(2, "amy", 2, ContributionAction.COLLECTED),
    ]
    assert [entry["user_id"] for entry in contribution_leaderboard(records)] == ["amy", "zed"]
