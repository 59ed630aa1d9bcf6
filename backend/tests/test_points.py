"""Tests for points-to-time conversion."""
import pytest

from intake_planner.engine.points import CONVERSION_TABLE_POINTS, conversion_table, estimated_time_label, points_to_days


def test_reference_points_are_two_weeks():
    assert points_to_days(15) == pytest.approx(10)
    assert estimated_time_label(15) == "2.0 weeks"


@pytest.mark.parametrize(
    "points,label",
    [(1, "0.7 days"), (3, "2.0 days"), (7, "4.7 days"), (8, "1.1 weeks"), (20, "2.7 weeks")],
)
def test_estimated_time_label(points, label):
    assert estimated_time_label(points) == label


@pytest.mark.parametrize("points", [0, -3, None])
def test_no_points(points):
    assert points_to_days(points) == 0.0
    assert estimated_time_label(points) == "n/a"


def test_conversion_table():
    table = conversion_table()
    assert [row.points for row in table] == list(CONVERSION_TABLE_POINTS)
    assert table[2].days == pytest.approx(2.0)
    assert table[-1].label == "2.7 weeks"
