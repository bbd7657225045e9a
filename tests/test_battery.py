import pytest

from simulation import has_arrived, haversine, project_battery_level, round_level


def test_projection_scenario_two_percent_per_second():
    assert project_battery_level(100, 2.0, 0) == 100
    assert project_battery_level(100, 2.0, 10) == 80
    assert project_battery_level(100, 2.0, 50) == 0
    assert project_battery_level(100, 2.0, 500) == 0


@pytest.mark.parametrize("drain_rate", [0.1, 0.5, 2.0, 7.3])
def test_projection_is_monotonic_and_bounded(drain_rate):
    previous = project_battery_level(100, drain_rate, 0)
    for step in range(1, 800):
        level = project_battery_level(100, drain_rate, step * 0.25)
        assert 0 <= level <= 100
        assert level <= previous
        previous = level


def test_projection_rounds_half_up():
    # 100 - 3 * 0.5 = 98.5
    assert project_battery_level(100, 0.5, 3) == 99
    assert round_level(20.5) == 21
    assert round_level(20.49) == 20


def test_negative_elapsed_time_is_treated_as_zero():
    assert project_battery_level(64, 2.0, -30) == 64


def test_projection_never_exceeds_full_battery():
    assert project_battery_level(150, 1.0, 0) == 100


def test_haversine_known_distance():
    # ~54 m east at Bengaluru latitude
    d = haversine(12.9716, 77.5946, 12.9716, 77.5951)
    assert 0.05 < d < 0.06
    assert haversine(12.9716, 77.5946, 12.9716, 77.5946) == 0


def test_has_arrived_uses_fifty_metre_radius():
    assert not has_arrived(12.9716, 77.5946, 12.9716, 77.5951)
    assert has_arrived(12.9716, 77.5948, 12.9716, 77.5951)
    assert has_arrived(12.9716, 77.5946, 12.9716, 77.5951, radius_km=0.1)
