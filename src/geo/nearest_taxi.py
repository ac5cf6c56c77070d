"""Rank taxis by great-circle distance from an origin."""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from scipy.spatial import cKDTree

from ..config import DEFAULT_TOP_K
from ..feed.parser import TaxiRecord
from .distance import haversine_many, to_unit_vectors
from .location import Coordinate


@dataclass(frozen=True)
class RankedTaxi:
    """A taxi together with its distance from the origin."""

    record: TaxiRecord
    distance_km: float
    position: int | None = None  # index of record in the input sequence

    @property
    def display_distance(self) -> str:
        """Distance rounded for display, e.g. '3.14 km'."""
        return f"{self.distance_km:.2f} km"

    def to_dict(self) -> dict:
        return {**self.record.to_dict(), "distance_km": self.distance_km}


def _check_k(k: int) -> None:
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 0:
        raise ValueError(f"k must be a non-negative integer, got {k!r}")


def _coordinate_arrays(records: Sequence[TaxiRecord]) -> tuple[np.ndarray, np.ndarray]:
    lats = np.fromiter((r.latitude for r in records), dtype=float, count=len(records))
    lons = np.fromiter((r.longitude for r in records), dtype=float, count=len(records))
    return lats, lons


def rank_nearest(
    origin: Coordinate | None,
    records: Sequence[TaxiRecord],
    k: int = DEFAULT_TOP_K,
) -> list[RankedTaxi]:
    """
    Return the k records closest to origin, nearest first.

    Records at equal distance keep their input order. A missing origin or an
    empty record list gives an empty result.

    Args:
        origin: Reference position, or None if not known yet
        records: Candidate taxis
        k: Maximum number of results

    Returns:
        min(k, len(records)) ranked taxis
    """
    _check_k(k)
    if origin is None or not records or k == 0:
        return []

    lats, lons = _coordinate_arrays(records)
    distances = haversine_many(origin.latitude, origin.longitude, lats, lons)
    order = np.argsort(distances, kind="stable")[:k]

    return [
        RankedTaxi(
            record=records[int(i)],
            distance_km=float(distances[i]),
            position=int(i),
        )
        for i in order
    ]


class NearestTaxiFinder:
    """
    Find nearest taxis using a KD-Tree for repeated queries over one feed.

    The tree is built on unit-sphere Cartesian coordinates, where Euclidean
    distance orders points exactly as great-circle distance does. Results
    match rank_nearest(), including the order of ties.
    """

    def __init__(self, records: Sequence[TaxiRecord] = ()):
        self.records: tuple[TaxiRecord, ...] = ()
        self.tree: cKDTree | None = None
        self.load_records(records)

    def load_records(self, records: Sequence[TaxiRecord]) -> None:
        """Replace the indexed record set."""
        self.records = tuple(records)
        self._lats, self._lons = _coordinate_arrays(self.records)
        self._build_tree()

    def _build_tree(self) -> None:
        if not self.records:
            self.tree = None
            return
        self.tree = cKDTree(to_unit_vectors(self._lats, self._lons))

    def find_nearest(
        self, origin: Coordinate | None, k: int = DEFAULT_TOP_K
    ) -> list[RankedTaxi]:
        """
        Find the k taxis nearest to origin.

        Args:
            origin: Reference position, or None if not known yet
            k: Maximum number of results

        Returns:
            Ranked taxis, nearest first
        """
        _check_k(k)
        if self.tree is None or origin is None or k == 0:
            return []

        k = min(k, len(self.records))
        point = to_unit_vectors([origin.latitude], [origin.longitude])[0]

        chord_distances, _ = self.tree.query(point, k=k)
        radius = float(np.max(chord_distances))

        # Everything within the k-th distance, so ties at the cut-off are
        # resolved by input order rather than by tree layout
        candidates = np.sort(
            np.asarray(self.tree.query_ball_point(point, r=radius * (1 + 1e-9) + 1e-12), dtype=int)
        )
        distances = haversine_many(
            origin.latitude, origin.longitude, self._lats[candidates], self._lons[candidates]
        )
        order = np.argsort(distances, kind="stable")[:k]

        return [
            RankedTaxi(
                record=self.records[int(candidates[i])],
                distance_km=float(distances[i]),
                position=int(candidates[i]),
            )
            for i in order
        ]

    def __len__(self) -> int:
        return len(self.records)
