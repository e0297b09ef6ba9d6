from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, assert_never

from grid.model import LayoutVariant, Row
from runtime.fields import Field, field_from_cell, load_value
from runtime.settings import RuntimeSettings


@dataclass
class RowRecord:
    index: int
    code: str = ""
    title: str = ""
    fields: dict[str, Field] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Row, index: int, settings: RuntimeSettings | None = None) -> "RowRecord":
        return cls(
            index=index,
            code=row.code,
            title=row.title,
            fields={c.name: field_from_cell(c, index, settings) for c in row.cells},
        )

    @property
    def stripe(self) -> str:
        return "even" if self.index % 2 == 0 else "odd"

    def has_data(self) -> bool:
        return any(f.counts_as_data() for f in self.fields.values())

    def clear_errors(self) -> None:
        for f in self.fields.values():
            f.clear_error()

    def validate(self) -> bool:
        """Validate every field; a row without data is always valid."""
        if not self.has_data():
            self.clear_errors()
            return True
        valid = True
        for f in self.fields.values():
            if f.readonly:
                f.clear_error()
                continue
            if f.validate() is not None:
                valid = False
        return valid

    def load(self, values: dict[str, Any]) -> None:
        for name, value in values.items():
            f = self.fields.get(name)
            if f is not None and not f.readonly:
                load_value(f, value)

    def serialize(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for name, f in self.fields.items():
            if f.blocked:
                continue
            value = f.wire_value()
            if value is not None:
                data[name] = value
        return data

    def flash_success(self, until: float) -> None:
        for f in self.fields.values():
            if f.counts_as_data():
                f.success_until = until


class RowCollection:
    """Ordered rows of a grid with a monotonic index counter.

    Indices are never reused, even after a row is deleted.
    """

    def __init__(self):
        self._rows: dict[int, RowRecord] = {}
        self.next_index = 0

    def allocate(self) -> int:
        index = self.next_index
        self.next_index += 1
        return index

    def add(self, record: RowRecord) -> RowRecord:
        self._rows[record.index] = record
        self.next_index = max(self.next_index, record.index + 1)
        return record

    def remove(self, index: int) -> RowRecord | None:
        return self._rows.pop(index, None)

    def get(self, index: int) -> RowRecord | None:
        return self._rows.get(index)

    def codes(self) -> list[str]:
        return [r.code for r in self._rows.values()]

    def find_field(self, field_id: str) -> tuple[RowRecord, Field] | None:
        index, _, name = field_id.partition(":")
        try:
            record = self._rows.get(int(index))
        except ValueError:
            return None
        if record is None or name not in record.fields:
            return None
        return record, record.fields[name]

    def fields(self) -> Iterator[Field]:
        for record in self._rows.values():
            yield from record.fields.values()

    def __iter__(self) -> Iterator[RowRecord]:
        return iter(list(self._rows.values()))

    def __len__(self) -> int:
        return len(self._rows)


def serialize_rows(rows: RowCollection, variant: LayoutVariant) -> list[dict[str, Any]] | dict[str, Any]:
    """Build the save payload: a row list for horizontal grids, one object for vertical."""
    match variant:
        case (
            LayoutVariant.HORIZONTAL_STATIC_UNIQUE
            | LayoutVariant.HORIZONTAL_DYNAMIC_UNIQUE
            | LayoutVariant.HORIZONTAL_DYNAMIC_DUPLICABLE
        ):
            return [r.serialize() for r in rows if r.has_data()]
        case LayoutVariant.VERTICAL_STATIC_UNIQUE:
            data: dict[str, Any] = {}
            for r in rows:
                data.update(r.serialize())
            return data
        case LayoutVariant.SYSTEM_DEFINITION:
            return []
        case _:
            assert_never(variant)
