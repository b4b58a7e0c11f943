from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, overload

import pandas as pd


@dataclass(frozen=True)
class Column:
    key: str
    label: str = ""
    sortable: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Column:
        return cls(
            key=data["key"],
            label=data.get("label", data["key"].replace("_", " ").title()),
            sortable=bool(data.get("sortable", True)),
        )


def is_true(value: Any) -> bool:
    """Attribute flags arrive as real booleans or as "true"/"false" text."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() == "true"


@dataclass
class Row:
    """
    One data row of a local table.

    - id: unique, immutable for the row's lifetime
    - attributes: column key -> comparable str/number value
    - filter_hidden: derived cache, recomputed whenever search or filters change
    - markup: source `<tr>` markup when the row was read from a document
    """

    id: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    filter_hidden: bool = False
    markup: Optional[str] = None

    def flag(self, name: str) -> bool:
        return is_true(self.attributes.get(name))


class RowSnapshot(Sequence[Row]):
    """
    Ordered, typed in-memory copy of a local table's rows. The markup is a
    projection of this snapshot plus the TableView.
    """

    def __init__(self, rows: Iterable[Row] = ()):
        self._rows: List[Row] = list(rows)
        self._by_id: Dict[str, Row] = {}
        for row in self._rows:
            if row.id in self._by_id:
                raise ValueError(f"Duplicate row id '{row.id}'")
            self._by_id[row.id] = row

    @overload
    def __getitem__(self, index: int) -> Row: ...

    @overload
    def __getitem__(self, index: slice) -> List[Row]: ...

    def __getitem__(self, index):
        return self._rows[index]

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    def __contains__(self, row_id: object) -> bool:
        return row_id in self._by_id

    def get(self, row_id: str) -> Optional[Row]:
        return self._by_id.get(row_id)

    def ids(self) -> List[str]:
        return [row.id for row in self._rows]

    def attributes_of(self, row_id: str) -> Optional[Mapping[str, Any]]:
        row = self._by_id.get(row_id)
        return row.attributes if row is not None else None

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], id_column: str = "id") -> RowSnapshot:
        rows = []
        for record in records:
            if id_column not in record:
                raise KeyError(f"Record has no '{id_column}' column: {dict(record)!r}")
            attrs = dict(record)
            rows.append(Row(id=str(attrs[id_column]), attributes=attrs))
        return cls(rows)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, id_column: Optional[str] = None) -> RowSnapshot:
        """
        Build a snapshot from a DataFrame. Row ids come from `id_column`, or
        from the index when no column is given. Missing values become None.
        """
        clean = df.astype(object).where(pd.notna(df), None)
        if id_column is None:
            clean = clean.reset_index()
            id_column = clean.columns[0]
        return cls.from_records(clean.to_dict(orient="records"), id_column=id_column)
