from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from tableview.core.exceptions import ConfigError
from tableview.core.rows import Column, RowSnapshot
from tableview.core.selection import BulkAction
from tableview.core.state import DEFAULT_PAGE_SIZE, Mode, PaginationMode, SortDirection

# ---- Table entries ----


@dataclass
class TableConfig:
    """
    Parsed config entry for a single table (one file under tables/).
    """
    raw: Dict[str, Any]
    source_path: Path
    index: int

    @property
    def id(self) -> str:
        return self.raw.get("id") or self.source_path.stem

    @property
    def title(self) -> str:
        return self.raw.get("title", self.id.replace("_", " ").title())

    @property
    def mode(self) -> Mode:
        return Mode(self.raw.get("mode", Mode.LOCAL.value))

    @property
    def pagination_mode(self) -> PaginationMode:
        return PaginationMode(self.raw.get("pagination_mode", PaginationMode.OFFSET.value))

    @property
    def page_size(self) -> Optional[int]:
        value = self.raw.get("page_size")
        return int(value) if value is not None else None

    @property
    def data(self) -> Optional[Path]:
        value = self.raw.get("data")
        return Path(value) if value else None

    @property
    def url(self) -> Optional[str]:
        return self.raw.get("url")

    @property
    def body_url(self) -> Optional[str]:
        return self.raw.get("body_url")

    @property
    def refresh_url(self) -> Optional[str]:
        return self.raw.get("refresh_url")

    @property
    def id_column(self) -> str:
        return self.raw.get("id_column", "id")

    @property
    def columns(self) -> List[Column]:
        return [Column.from_dict(c) for c in self.raw.get("columns", [])]

    @property
    def default_sort(self) -> Optional[str]:
        sort = self.raw.get("default_sort") or {}
        return sort.get("column")

    @property
    def default_direction(self) -> SortDirection:
        sort = self.raw.get("default_sort") or {}
        return SortDirection.parse(sort.get("direction"))

    @property
    def bulk_actions(self) -> List[BulkAction]:
        return [BulkAction.from_dict(a) for a in self.raw.get("bulk_actions", [])]

    @property
    def row_actions(self) -> List[Dict[str, Any]]:
        return list(self.raw.get("row_actions", []))

    @property
    def sync_address_bar(self) -> bool:
        return bool(self.raw.get("sync_address_bar", self.mode is Mode.REMOTE))

    def validate(self) -> None:
        """Raise ConfigError for entries the engines cannot run."""
        try:
            mode = self.mode
            pagination_mode = self.pagination_mode
        except ValueError as e:
            raise ConfigError(f"{self.source_path.name}: {e}") from e

        if self.page_size is not None and self.page_size < 1:
            raise ConfigError(f"{self.source_path.name}: page_size must be positive")
        if mode is Mode.LOCAL:
            if pagination_mode is PaginationMode.CURSOR:
                raise ConfigError(f"{self.source_path.name}: cursor pagination requires mode 'remote'")
            if self.data is None:
                raise ConfigError(f"{self.source_path.name}: local tables need a 'data' file")
        elif not self.url:
            raise ConfigError(f"{self.source_path.name}: remote tables need a 'url'")

        for action in self.raw.get("bulk_actions", []):
            if "name" not in action:
                raise ConfigError(f"{self.source_path.name}: bulk action without 'name'")

    def load_rows(self, data_root: Optional[Path] = None) -> RowSnapshot:
        """Read the local CSV dataset into a row snapshot."""
        if self.data is None:
            return RowSnapshot()
        path = self.data if self.data.is_absolute() or data_root is None else data_root / self.data
        if not path.is_file():
            raise ConfigError(f"Data file not found for table '{self.id}': {path}")
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        if self.id_column not in df.columns:
            raise ConfigError(f"Table '{self.id}' has no id column '{self.id_column}' in {path.name}")
        return RowSnapshot.from_dataframe(df, id_column=self.id_column)

    @classmethod
    def from_raw(cls, raw: Dict[str, Any], source_path: Path, index: int) -> TableConfig:
        return cls(raw=raw, source_path=source_path, index=index)


# ---- App-wide settings ----


@dataclass
class GlobalConfig:
    ui_title: str = "Tables"
    default_page_size: int = DEFAULT_PAGE_SIZE
    page_size_options: List[int] = field(default_factory=lambda: [10, 25, 50, 100])
    local_search_debounce_ms: int = 200
    remote_search_debounce_ms: int = 300
    reconcile_interval_ms: int = 2000
    data_root: Optional[Path] = None
    tables: List[TableConfig] = field(default_factory=list)

    @property
    def local_search_wait(self) -> float:
        return self.local_search_debounce_ms / 1000.0

    @property
    def remote_search_wait(self) -> float:
        return self.remote_search_debounce_ms / 1000.0

    @property
    def reconcile_interval(self) -> float:
        return self.reconcile_interval_ms / 1000.0
