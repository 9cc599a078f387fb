from datetime import datetime
from typing import Optional

from scorebook.models import Match


def date_renderings(date: datetime) -> list[str]:
    """Lower-cased ways a user might type a match date into the search box."""
    return [
        date.strftime("%Y-%m-%d"),
        date.strftime("%d/%m/%Y"),
        str(date.day),
        date.strftime("%B").lower(),
        date.strftime("%b").lower(),
        date.strftime("%a %b %d %Y").lower(),
    ]


def matches_query(match: Match, query: str) -> bool:
    query = query.lower().strip()
    if query in match.team_a.name.lower() or query in match.team_b.name.lower():
        return True
    return any(query in rendering for rendering in date_renderings(match.date))


def search_history(matches: list[Match], query: Optional[str] = None) -> list[Match]:
    """Filter archived matches by team name or date, keeping their order."""
    if not query or not query.strip():
        return list(matches)
    return [m for m in matches if matches_query(m, query)]
