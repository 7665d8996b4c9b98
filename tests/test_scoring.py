import pytest

from fakes import offer, one_stop_legs

from flightchat.rank.scoring import (
    convenience_score,
    cost_score,
    departure_hour,
    layover_hours,
    recommendation_score,
    round_half_up,
)
from flightchat.types import UserPreferences


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(3.4) == 3
    assert round_half_up(1.0) == 1


def test_cost_scores_for_spread_batch():
    prices = [3000, 5000, 8000]
    assert [cost_score(p, 3000, 8000) for p in prices] == [5, 3, 1]


@pytest.mark.parametrize("prices", [
    [100, 200],
    [1200, 1300, 1999, 4500, 9000],
    [50.5, 51.25, 75.0, 1000.99],
])
def test_cost_score_bounds_and_monotonic(prices):
    lo, hi = min(prices), max(prices)
    scores = [cost_score(p, lo, hi) for p in sorted(prices)]
    assert scores[0] == 5
    assert scores[-1] == 1
    assert all(a >= b for a, b in zip(scores, scores[1:]))
    assert all(1 <= s <= 5 for s in scores)


def test_same_price_batch_scores_five():
    assert cost_score(4000, 4000, 4000) == 5


def test_departure_hour_and_direct_layover():
    o = offer(3000)
    assert departure_hour(o) == 7
    assert layover_hours(o) == 0.0


def test_layover_is_gap_between_segments():
    o = offer(3000, legs=one_stop_legs("2025-05-01T09:00:00", "2025-05-01T11:30:00"))
    assert layover_hours(o) == 2.5


def test_convenience_direct_morning_match():
    # 07:00 departure, direct flight wanted and direct, no layover -> (5 + 5 + 5) / 3
    prefs = UserPreferences(preferred_time="morning", direct_flight=True)
    assert convenience_score(offer(3000), prefs) == 5


def test_convenience_mismatch():
    # 06:00 departure misses the evening window (3), not direct (2), 2.5h layover (3)
    prefs = UserPreferences(preferred_time="evening", direct_flight=True)
    o = offer(3000, legs=one_stop_legs())
    assert convenience_score(o, prefs) == round_half_up((3 + 2 + 3) / 3)


def test_convenience_long_layover():
    prefs = UserPreferences()
    o = offer(3000, legs=one_stop_legs("2025-05-01T09:00:00", "2025-05-01T14:00:00"))
    assert convenience_score(o, prefs) == 1


def test_direct_flight_not_wanted_scores_two():
    prefs = UserPreferences(direct_flight=False)
    # (2 + 5) / 2 = 3.5 -> 4
    assert convenience_score(offer(3000), prefs) == 4


def test_window_end_is_exclusive():
    prefs = UserPreferences(preferred_time="morning")
    o = offer(3000, legs=[("DEL", "2025-05-01T11:00:00", "BOM", "2025-05-01T13:00:00")])
    # (3 + 5) / 2 = 4
    assert convenience_score(o, prefs) == 4


def test_recommendation_is_rounded_mean():
    assert recommendation_score(5, 4) == 5
    assert recommendation_score(1, 4) == 3
    assert recommendation_score(3, 3) == 3
