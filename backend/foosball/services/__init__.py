"""Internal application services."""

from .rating import compute_rating, expected_score, round_half_up, team_rating
from .recorder import MatchResult, RatingChangeResult, record_match
from .players import create_player, get_players, seed_sample_players
from .matches import MatchView, get_matches
from .maintenance import check_health, reset_all
from .stats import league_statistics, summarize_players, win_rate

__all__ = [
    "compute_rating",
    "expected_score",
    "round_half_up",
    "team_rating",
    "record_match",
    "MatchResult",
    "RatingChangeResult",
    "create_player",
    "get_players",
    "seed_sample_players",
    "get_matches",
    "MatchView",
    "check_health",
    "reset_all",
    "league_statistics",
    "summarize_players",
    "win_rate",
]
