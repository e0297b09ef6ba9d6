"""Cell Model: columns, cells, rows and table descriptions shared by server and client."""

from dataclasses import dataclass, field
from enum import Enum

from grid import codec


# Column names ending in this suffix hold the row's code and are never editable.
CODE_SUFFIX = "_Kod"
# Column names ending in this suffix are pre-filled with the code's catalogue title.
DESCRIPTION_SUFFIX = "_Wyszczegolnienie"
# Dictionary that lists the subtable codes themselves; it never yields options.
CODE_DICTIONARY = "Kody"

NUMBER_TYPES = {"int", "float", "number"}


class LayoutVariant(str, Enum):
    HORIZONTAL_STATIC_UNIQUE = "HORIZONTAL_STATIC_UNIQUE"
    HORIZONTAL_DYNAMIC_UNIQUE = "HORIZONTAL_DYNAMIC_UNIQUE"
    HORIZONTAL_DYNAMIC_DUPLICABLE = "HORIZONTAL_DYNAMIC_DUPLICABLE"
    VERTICAL_STATIC_UNIQUE = "VERTICAL_STATIC_UNIQUE"
    SYSTEM_DEFINITION = "SYSTEM_DEFINITION"

    @property
    def is_dynamic(self) -> bool:
        return self in (
            LayoutVariant.HORIZONTAL_DYNAMIC_UNIQUE,
            LayoutVariant.HORIZONTAL_DYNAMIC_DUPLICABLE,
        )

    @property
    def is_unique(self) -> bool:
        return self is LayoutVariant.HORIZONTAL_DYNAMIC_UNIQUE


class FieldKind(str, Enum):
    NUMBER = "number"
    TEXT = "text"
    CHOICE = "choice"
    MULTI_EXCLUSIVE = "multi"


def field_kind(data_type: str | None) -> FieldKind:
    """Map a unit data type or dictionary type onto the input capability it needs."""
    value = (data_type or "").strip().lower()
    if value in NUMBER_TYPES:
        return FieldKind.NUMBER
    if value == "multi":
        return FieldKind.MULTI_EXCLUSIVE
    if value in ("choice", "p"):
        return FieldKind.CHOICE
    return FieldKind.TEXT


@dataclass
class EnumOption:
    value: str
    label: str
    exclusive: bool = False

    @property
    def text(self) -> str:
        return f"{self.value} - {self.label}"


@dataclass
class Column:
    """One column of a subtable as described by the metadata tables."""

    name: str
    title: str = ""
    label: str = ""
    data_type: str = "string"
    unit: str = ""
    format: str = ""
    required: bool = False
    visible: bool = True
    width: int = 0
    formula: str = ""
    regex: str = ""
    min: int | None = None
    max: int | None = None
    order: int = 0
    error_message: str = ""
    kind: FieldKind = FieldKind.TEXT
    options: list[EnumOption] = field(default_factory=list)
    is_pk: bool = False

    @property
    def is_code(self) -> bool:
        return self.name.endswith(CODE_SUFFIX)


@dataclass
class Cell:
    name: str
    column: Column
    value: str = ""
    required: bool = False
    editable: bool = True
    blocked: bool = False

    def __post_init__(self) -> None:
        # Only a block may relax the column's required flag.
        if self.column.required and not self.blocked:
            self.required = True

    @property
    def kind(self) -> FieldKind:
        return self.column.kind

    @property
    def display_value(self) -> str:
        """Value as an input would show it after the initial render."""
        if self.kind is FieldKind.NUMBER:
            number = codec.parse_number(self.value)
            if number is None:
                return self.value
            return codec.render_number(number, codec.parse_format(self.column.format or "###0"))
        if self.kind is FieldKind.CHOICE:
            for option in self.column.options:
                if option.value == self.value:
                    return option.text
        return self.value


@dataclass
class Row:
    cells: list[Cell] = field(default_factory=list)
    title: str = ""
    code: str = ""
    index: int = 0

    def cell(self, name: str) -> Cell | None:
        for cell in self.cells:
            if cell.name == name:
                return cell
        return None


@dataclass
class CodeEntry:
    code: str
    title: str = ""

    @property
    def text(self) -> str:
        return f"{self.code} - {self.title}"


@dataclass
class TableDescription:
    """Everything a client needs to render and edit one subtable."""

    variant: LayoutVariant
    columns: list[Column] = field(default_factory=list)
    rows: list[Row] = field(default_factory=list)
    codes: list[CodeEntry] = field(default_factory=list)
    endpoint: str = ""
    data: str = ""
    table_name: str = ""
    year: int | None = None
    table: str = ""
    subtable: str = ""
    survey_id: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.columns

    @classmethod
    def empty(
        cls, variant: LayoutVariant = LayoutVariant.HORIZONTAL_STATIC_UNIQUE, **kwargs
    ) -> "TableDescription":
        return cls(variant=variant, **kwargs)
