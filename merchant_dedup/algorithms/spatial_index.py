#!/usr/bin/env python3
"""
Bitcoin Merchant Map — Spatial Grid Index

Buckets merchant records into fixed-size lat/lon cells so that candidate
matching only looks at geographically plausible neighbours instead of the
whole base set.

Column indices wrap around the antimeridian: the cells either side of
±180° are neighbours, and longitude 180 shares a column with -180.

The index is built once from an iterable of records and is read-only
afterwards.  Each deduplication pass builds its own.
"""

from __future__ import annotations

import math
from collections import defaultdict
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping, Sequence

from .geo_proximity import Coordinate, bounding_box

if TYPE_CHECKING:
    from ..sources.adapters import MerchantRecord


def column_range(cell_size_deg: float) -> tuple[int, int]:
    """(first column, number of columns) covering one full turn of longitude."""
    return math.floor(-180.0 / cell_size_deg), math.ceil(360.0 / cell_size_deg)


def wrap_column(col: int, cell_size_deg: float) -> int:
    """Fold a column index back into the range starting at longitude -180."""
    first, count = column_range(cell_size_deg)
    return (col - first) % count + first


def cell_indices(latitude: float, longitude: float, cell_size_deg: float) -> tuple[int, int]:
    """Integer (row, column) of the cell containing a coordinate."""
    row = math.floor(latitude / cell_size_deg)
    col = wrap_column(math.floor(longitude / cell_size_deg), cell_size_deg)
    return row, col


def grid_key(latitude: float, longitude: float, cell_size_deg: float) -> str:
    """Cell key in ``"<row>,<col>"`` form."""
    row, col = cell_indices(latitude, longitude, cell_size_deg)
    return f"{row},{col}"


class GridIndex:
    """Read-only mapping of grid-cell key → records in that cell."""

    def __init__(self, records: Iterable["MerchantRecord"], cell_size_deg: float):
        if cell_size_deg <= 0:
            raise ValueError("cell_size_deg must be positive")
        self.cell_size_deg = cell_size_deg
        self._first_col, self._col_count = column_range(cell_size_deg)

        cells: dict[str, list["MerchantRecord"]] = defaultdict(list)
        rows: dict[int, set[int]] = defaultdict(set)
        count = 0
        for record in records:
            row, col = cell_indices(record.latitude, record.longitude, cell_size_deg)
            cells[f"{row},{col}"].append(record)
            rows[row].add(col)
            count += 1

        self._cells: Mapping[str, tuple["MerchantRecord", ...]] = MappingProxyType(
            {key: tuple(members) for key, members in cells.items()}
        )
        # Populated columns per row, for neighbourhoods that span every column
        self._row_columns = {row: sorted(cols) for row, cols in rows.items()}
        self._count = count

    def __len__(self) -> int:
        return self._count

    def __contains__(self, key: object) -> bool:
        return key in self._cells

    @property
    def cells(self) -> Mapping[str, tuple["MerchantRecord", ...]]:
        return self._cells

    def cell(self, key: str) -> tuple["MerchantRecord", ...]:
        return self._cells.get(key, ())

    def _neighborhood(
        self,
        latitude: float,
        longitude: float,
        radius_m: float | None,
    ) -> tuple[range, Sequence[int] | None]:
        """
        Rows and wrapped columns to scan around a coordinate.

        Columns come back as None when the span covers the whole parallel.
        """
        row = math.floor(latitude / self.cell_size_deg)
        col = math.floor(longitude / self.cell_size_deg)
        col_span = 1

        if radius_m is not None:
            min_lat, max_lat, _, _ = bounding_box(Coordinate(latitude, longitude), radius_m)
            # Longitude span is widest at the poleward edge of the circle
            for edge_lat in (latitude, max(-90.0, min_lat), min(90.0, max_lat)):
                _, _, min_lon, max_lon = bounding_box(Coordinate(edge_lat, longitude), radius_m)
                min_col = math.floor(min_lon / self.cell_size_deg)
                max_col = math.floor(max_lon / self.cell_size_deg)
                col_span = max(col_span, col - min_col, max_col - col)

        rows = range(row - 1, row + 2)
        if 2 * col_span + 1 >= self._col_count:
            return rows, None
        cols = [wrap_column(col + dc, self.cell_size_deg) for dc in range(-col_span, col_span + 1)]
        return rows, cols

    def neighbor_keys(
        self,
        latitude: float,
        longitude: float,
        radius_m: float | None = None,
    ) -> list[str]:
        """
        Keys of the 3x3 block of cells centred on the coordinate's cell.

        When ``radius_m`` is given, the block is widened along longitude
        wherever a circle of that radius spans more than one cell (cells get
        narrower in metres towards the poles).  Once the block reaches all
        the way round, each column appears once in ascending order.  Keys
        are returned in a fixed row-major order.
        """
        rows, cols = self._neighborhood(latitude, longitude, radius_m)
        if cols is None:
            cols = range(self._first_col, self._first_col + self._col_count)
        return [f"{r},{c}" for r in rows for c in cols]

    def neighbors(
        self,
        latitude: float,
        longitude: float,
        radius_m: float | None = None,
    ) -> Iterator["MerchantRecord"]:
        """Yield records from the neighbouring cells in a stable order."""
        rows, cols = self._neighborhood(latitude, longitude, radius_m)
        for r in rows:
            # Whole parallel: visit only the populated cells of the row
            row_cols = self._row_columns.get(r, ()) if cols is None else cols
            for c in row_cols:
                yield from self._cells.get(f"{r},{c}", ())
