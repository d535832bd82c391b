from decimal import Decimal, ROUND_HALF_UP

from ..config import K_FACTOR


def round_half_up(value: float) -> int:
    """Round to the nearest integer with ties going away from zero.

    ``round()`` uses banker's rounding, so ``1516.5`` would become ``1516``;
    ratings need ``1517``. The float is converted exactly, so values such as
    ``1500.4999999999998`` still round down.
    """

    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def expected_score(rating_self: float, rating_opponent: float) -> float:
    """Return the logistic win expectation of ``rating_self`` against ``rating_opponent``."""

    exponent = (rating_opponent - rating_self) / 400
    # 10 ** 309 overflows a float
    if exponent > 308:
        return 0.0
    return 1 / (1 + 10 ** exponent)


def team_rating(first: float, second: float) -> float:
    """Team strength is the plain mean of both members' pre-match ratings."""

    return (first + second) / 2


def compute_rating(
    rating_self: float,
    rating_opponent: float,
    outcome: int,
    k: int = K_FACTOR,
) -> int:
    """Return the updated Elo rating for one side of a match.

    Args:
        rating_self: Current rating of the side being updated.
        rating_opponent: Current rating of the opposing side.
        outcome: ``1`` if ``rating_self`` won, ``0`` if it lost.
        k: K-factor controlling the size of the adjustment.
    """

    expected = expected_score(rating_self, rating_opponent)
    return round_half_up(rating_self + k * (outcome - expected))
