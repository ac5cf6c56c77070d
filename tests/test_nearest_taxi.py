"""Tests for nearest-taxi ranking."""

import pytest

from src.feed.parser import TaxiRecord
from src.geo.distance import haversine
from src.geo.location import Coordinate
from src.geo.nearest_taxi import NearestTaxiFinder, RankedTaxi, rank_nearest

# One kilometre along a meridian, in degrees
KM = 1 / 111.195

ORIGIN = Coordinate(0.0, 0.0)


@pytest.fixture
def spread():
    """Three taxis due north of the origin at 5, 1 and 3 km."""
    return [
        TaxiRecord("5", "50", 5 * KM, 0.0),
        TaxiRecord("1", "10", 1 * KM, 0.0),
        TaxiRecord("3", "30", 3 * KM, 0.0),
    ]


@pytest.fixture
def ties():
    """Taxis at equal distance east and west of the origin, plus duplicates."""
    return [
        TaxiRecord("east", "1", 0.0, 0.01),
        TaxiRecord("far", "2", 0.5, 0.5),
        TaxiRecord("west", "3", 0.0, -0.01),
        TaxiRecord("east-copy", "4", 0.0, 0.01),
    ]


class TestRankNearest:
    """Tests for rank_nearest()."""

    def test_orders_ascending(self, spread):
        ranked = rank_nearest(ORIGIN, spread, 3)
        assert [r.record.unit_id for r in ranked] == ["1", "3", "5"]
        assert [r.distance_km for r in ranked] == pytest.approx([1, 3, 5], abs=0.01)

    def test_truncates_to_k(self, spread):
        ranked = rank_nearest(ORIGIN, spread, 2)
        assert [r.record.unit_id for r in ranked] == ["1", "3"]

    def test_k_larger_than_records(self, spread):
        assert len(rank_nearest(ORIGIN, spread, 10)) == 3

    def test_k_zero(self, spread):
        assert rank_nearest(ORIGIN, spread, 0) == []

    def test_default_k_is_three(self, records):
        assert len(rank_nearest(Coordinate(19.0, -99.0), records * 2)) == 3

    def test_empty_records(self):
        assert rank_nearest(ORIGIN, [], 3) == []

    def test_missing_origin(self, spread):
        assert rank_nearest(None, spread, 3) == []

    @pytest.mark.parametrize("k", [-1, 1.5, "3", True])
    def test_invalid_k(self, spread, k):
        with pytest.raises(ValueError):
            rank_nearest(ORIGIN, spread, k)

    def test_ties_keep_input_order(self, ties):
        ranked = rank_nearest(ORIGIN, ties, 3)
        assert [r.record.unit_id for r in ranked] == ["east", "west", "east-copy"]

    def test_records_shared_not_copied(self, spread):
        ranked = rank_nearest(ORIGIN, spread, 1)
        assert ranked[0].record is spread[1]

    def test_positions_point_into_input(self, spread):
        ranked = rank_nearest(ORIGIN, spread, 3)
        assert [r.position for r in ranked] == [1, 2, 0]
        assert all(spread[r.position] is r.record for r in ranked)

    def test_distance_matches_haversine(self, records):
        origin = Coordinate(19.0, -99.0)
        ranked = rank_nearest(origin, records, 3)
        for r in ranked:
            expected = haversine(19.0, -99.0, r.record.latitude, r.record.longitude)
            assert r.distance_km == pytest.approx(expected)

    def test_feed_scenario(self, records):
        ranked = rank_nearest(Coordinate(19.0, -99.0), records, 3)
        assert [r.record.unit_id for r in ranked] == ["2002", "0042", "1001"]
        assert 0 < ranked[-1].distance_km < 55


class TestRankedTaxi:
    """Tests for the ranked result value."""

    def test_display_distance(self):
        ranked = RankedTaxi(TaxiRecord("1", "2", 0.0, 0.0), 3.14159)
        assert ranked.display_distance == "3.14 km"
        assert ranked.distance_km == 3.14159

    def test_to_dict(self):
        ranked = RankedTaxi(TaxiRecord("007", "2", 1.5, 2.5), 1.0)
        assert ranked.to_dict() == {
            "unit_id": "007",
            "license_id": "2",
            "latitude": 1.5,
            "longitude": 2.5,
            "distance_km": 1.0,
        }


class TestNearestTaxiFinder:
    """Tests for the KD-tree backed finder."""

    def test_empty_finder(self):
        finder = NearestTaxiFinder()
        assert len(finder) == 0
        assert finder.find_nearest(ORIGIN, 3) == []

    def test_missing_origin(self, spread):
        assert NearestTaxiFinder(spread).find_nearest(None, 3) == []

    def test_orders_ascending(self, spread):
        ranked = NearestTaxiFinder(spread).find_nearest(ORIGIN, 2)
        assert [r.record.unit_id for r in ranked] == ["1", "3"]

    def test_single_result(self, spread):
        ranked = NearestTaxiFinder(spread).find_nearest(ORIGIN, 1)
        assert [r.record.unit_id for r in ranked] == ["1"]

    @pytest.mark.parametrize("k", [0, 1, 2, 3, 4, 10])
    def test_matches_rank_nearest_with_ties(self, ties, k):
        finder = NearestTaxiFinder(ties)
        expected = rank_nearest(ORIGIN, ties, k)
        actual = finder.find_nearest(ORIGIN, k)
        assert [r.record.unit_id for r in actual] == [r.record.unit_id for r in expected]
        assert [r.position for r in actual] == [r.position for r in expected]
        assert [r.distance_km for r in actual] == pytest.approx(
            [r.distance_km for r in expected]
        )

    def test_matches_rank_nearest_on_grid(self):
        grid = [
            TaxiRecord(str(i), str(i), 19.0 + (i % 7) * 0.013, -99.0 - (i // 7) * 0.017)
            for i in range(49)
        ]
        origin = Coordinate(19.04, -99.05)
        expected = rank_nearest(origin, grid, 12)
        actual = NearestTaxiFinder(grid).find_nearest(origin, 12)
        assert [r.record.unit_id for r in actual] == [r.record.unit_id for r in expected]

    def test_origin_on_a_taxi(self, spread):
        ranked = NearestTaxiFinder(spread).find_nearest(Coordinate(3 * KM, 0.0), 1)
        assert ranked[0].record.unit_id == "3"
        assert ranked[0].distance_km == pytest.approx(0.0, abs=1e-9)

    def test_load_records_replaces_index(self, spread, records):
        finder = NearestTaxiFinder(spread)
        finder.load_records(records)
        assert len(finder) == 3
        assert finder.find_nearest(Coordinate(19.0, -99.0), 1)[0].record.unit_id == "2002"
