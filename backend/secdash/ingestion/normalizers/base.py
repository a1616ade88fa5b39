# backend/secdash/ingestion/normalizers/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Type

from secdash.core.constants import DEFAULT_ERROR_PREVIEW
from secdash.db.base import BaseModel
from secdash.ingestion.aliases import AliasTable, ColumnMap
from secdash.ingestion.csv_tokenizer import split_lines


@dataclass
class RowContext:
    """One tokenized data row plus what a normalizer needs to map it."""
    headers: List[str]
    values: List[str]
    columns: ColumnMap
    ordinal: int
    report_date: date

    def get(self, field_name: str, default=None):
        return self.columns.get(self.values, field_name, default)

    @property
    def raw(self) -> Dict[str, Optional[str]]:
        """Header -> cell value, empty cells as None."""
        return {
            header: (self.values[index] or None) if index < len(self.values) else None
            for index, header in enumerate(self.headers)
        }


@dataclass
class NormalizedRecord:
    key: str
    values: Dict[str, Any] = field(default_factory=dict)


class BaseNormalizer(ABC):
    """
    Maps one source's rows onto a model.

    Subclasses declare the target ``model``, the ``key_field`` used for the
    upsert and their default alias table. ``normalize`` raises on a bad row;
    the importer records the failure and moves on.
    """

    source: str = ""
    model: Type[BaseModel]
    key_field: str = "id"
    error_preview_limit: int = DEFAULT_ERROR_PREVIEW
    track_nesting: bool = False
    pad_short_rows: bool = False
    default_aliases: Optional[AliasTable] = None

    def __init__(self, aliases: Optional[AliasTable] = None):
        self.aliases = aliases or self.default_aliases

    def resolve_columns(self, headers: Sequence[str]) -> ColumnMap:
        return self.aliases.resolve(headers)

    def min_columns(self, headers: Sequence[str]) -> int:
        """Rows with fewer cells than this are rejected as insufficient."""
        return len(headers)

    def split_rows(self, text: str) -> List[str]:
        return split_lines(text)

    @abstractmethod
    def normalize(self, row: RowContext) -> NormalizedRecord:
        ...

    def merge(self, existing: Any, values: Dict[str, Any]) -> Dict[str, Any]:
        """Values written over an existing record; sources may fold in history."""
        return values
