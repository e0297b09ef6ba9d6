"""Field states for the editable cells of a grid.

A cell becomes exactly one of four field variants when the grid is built.
The variant decides how input is normalized, how the value is validated,
and what goes on the wire.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from grid import codec
from grid.model import Cell, EnumOption, FieldKind
from grid.populator import render_json_value
from runtime.settings import RuntimeSettings


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class FieldError:
    message: str
    severity: Severity = Severity.ERROR


REQUIRED_MESSAGE = "This field is required"
INVALID_NUMBER_MESSAGE = "Invalid number format"
CHOOSE_MESSAGE = "Choose a value from the list"
CHOOSE_ONE_MESSAGE = "Select at least one option"


@dataclass
class BaseField:
    name: str
    row_index: int
    required: bool = False
    readonly: bool = False
    blocked: bool = False
    error: FieldError | None = None
    popup_visible: bool = False
    success_until: float | None = None

    @property
    def id(self) -> str:
        return f"{self.row_index}:{self.name}"

    def _fail(self, message: str | None) -> FieldError | None:
        if message is None:
            self.error = None
        else:
            severity = Severity.ERROR if self.required else Severity.WARNING
            self.error = FieldError(message, severity)
        return self.error

    def clear_error(self) -> None:
        self.error = None
        self.popup_visible = False

    def shows_success(self, now: float) -> bool:
        return self.success_until is not None and now < self.success_until

    def counts_as_data(self) -> bool:
        return not self.readonly and self.has_value()

    def has_value(self) -> bool:
        raise NotImplementedError

    def check(self) -> str | None:
        raise NotImplementedError

    def validate(self) -> FieldError | None:
        return self._fail(self.check())


@dataclass
class NumberField(BaseField):
    text: str = ""
    format: str = "###0"
    min: int | None = None
    max: int | None = None
    message_override: str = ""

    @property
    def number_format(self) -> codec.NumberFormat:
        return codec.parse_format(self.format)

    def input(self, raw: str) -> FieldError | None:
        self.text = codec.normalize_number_input(raw, self.number_format)
        return self._fail(self.value_error())

    def blur(self) -> None:
        """Reformat to the display mask once the value parses."""
        number = codec.parse_number(self.text)
        if number is not None and not codec.is_blank(self.text):
            self.text = codec.render_number(number, self.number_format)

    def load(self, raw: str) -> None:
        number = codec.parse_number(raw)
        self.text = raw if number is None else codec.render_number(number, self.number_format)

    def has_value(self) -> bool:
        return self.text.strip() != ""

    def value_error(self) -> str | None:
        raw = self.text.strip()
        if codec.is_blank(raw):
            return None
        number = codec.parse_number(raw)
        if number is None:
            return INVALID_NUMBER_MESSAGE
        fmt = self.number_format
        if self.min is not None and number < self.min:
            return f"Value must be at least {codec.render_number(self.min, fmt)}"
        if self.max is not None and number > self.max:
            return f"Value must be at most {codec.render_number(self.max, fmt)}"
        return None

    def check(self) -> str | None:
        if self.required and codec.is_blank(self.text.strip()):
            return self.message_override or REQUIRED_MESSAGE
        return self.value_error()

    def wire_value(self) -> int | float | None:
        number = codec.parse_number(self.text)
        if number is None:
            return None
        if number == number.to_integral_value():
            return int(number)
        return float(number)


@dataclass
class TextField(BaseField):
    text: str = ""
    format: str = codec.UNTYPED_MASK

    @property
    def patterned(self) -> bool:
        return codec.uses_dash_pattern(self.format)

    def accepts_key(self, key: str) -> bool:
        return not self.patterned or codec.accepts_pattern_key(key)

    def input(self, raw: str) -> FieldError | None:
        self.text = codec.format_dash_pattern(raw) if self.patterned else raw
        return self._fail(codec.dash_pattern_error(self.text, self.format))

    def load(self, raw: str) -> None:
        self.text = raw

    def has_value(self) -> bool:
        return self.text.strip() != ""

    def check(self) -> str | None:
        if self.required and not self.text.strip():
            return REQUIRED_MESSAGE
        return codec.dash_pattern_error(self.text, self.format)

    def wire_value(self) -> str | None:
        return self.text.strip() or None


@dataclass
class ChoiceField(BaseField):
    options: list[EnumOption] = field(default_factory=list)
    value: str = ""
    text: str = ""
    query: str = ""
    open: bool = False

    def visible_options(self) -> list[EnumOption]:
        needle = self.query.lower()
        return [o for o in self.options if needle in o.text.lower()]

    def filter(self, query: str) -> list[EnumOption]:
        self.query = query
        self.text = query
        self.open = True
        return self.visible_options()

    def commit(self, value: str) -> EnumOption | None:
        for option in self.options:
            if option.value == value:
                self.value = option.value
                self.text = option.text
                self.query = ""
                self.open = False
                self.clear_error()
                return option
        return None

    def load(self, raw: str) -> None:
        self.value = raw
        self.text = raw
        for option in self.options:
            if option.value == raw:
                self.text = option.text

    def has_value(self) -> bool:
        return self.value.strip() != ""

    def check(self) -> str | None:
        if self.required and not self.value:
            return CHOOSE_MESSAGE
        return None

    def wire_value(self) -> str | None:
        return self.value or None


@dataclass
class MultiField(BaseField):
    options: list[EnumOption] = field(default_factory=list)
    checked: set[str] = field(default_factory=set)

    @property
    def exclusive(self) -> EnumOption | None:
        for option in self.options:
            if option.exclusive:
                return option
        return None

    @property
    def regular(self) -> list[EnumOption]:
        return [o for o in self.options if not o.exclusive]

    @property
    def exclusive_checked(self) -> bool:
        exclusive = self.exclusive
        return exclusive is not None and exclusive.value in self.checked

    def is_disabled(self, value: str) -> bool:
        exclusive = self.exclusive
        return self.exclusive_checked and exclusive is not None and value != exclusive.value

    @property
    def value(self) -> str:
        exclusive = self.exclusive
        if exclusive is not None and exclusive.value in self.checked:
            return exclusive.value
        return ",".join(o.value for o in self.regular if o.value in self.checked)

    def change(self, value: str, checked: bool) -> str:
        exclusive = self.exclusive
        if exclusive is not None and value == exclusive.value:
            if checked:
                self.checked = {value}
            else:
                self.checked.discard(value)
        elif checked:
            if exclusive is not None:
                self.checked.discard(exclusive.value)
            self.checked.add(value)
        else:
            self.checked.discard(value)
        return self.value

    def load(self, raw: str) -> None:
        selected = [v.strip() for v in raw.split(",") if v.strip()]
        exclusive = self.exclusive
        if exclusive is not None and exclusive.value in selected:
            self.checked = {exclusive.value}
            return
        self.checked = {o.value for o in self.regular if o.value in selected}

    def has_value(self) -> bool:
        return self.value != ""

    def check(self) -> str | None:
        if self.required and not self.value:
            return CHOOSE_ONE_MESSAGE
        return None

    def wire_value(self) -> str | None:
        return self.value or None


Field = NumberField | TextField | ChoiceField | MultiField


def field_from_cell(cell: Cell, row_index: int, settings: RuntimeSettings | None = None) -> Field:
    """Pick the field variant for a cell once, from its column's kind."""
    settings = settings or RuntimeSettings()
    column = cell.column
    common: dict[str, Any] = dict(
        name=cell.name,
        row_index=row_index,
        required=cell.required,
        readonly=not cell.editable or cell.blocked,
        blocked=cell.blocked,
    )

    match column.kind:
        case FieldKind.NUMBER:
            f: Field = NumberField(
                format=column.format or settings.default_number_format,
                min=column.min,
                max=column.max,
                message_override=column.error_message,
                **common,
            )
        case FieldKind.TEXT:
            f = TextField(format=column.format or settings.default_text_format, **common)
        case FieldKind.CHOICE:
            f = ChoiceField(options=list(column.options), **common)
        case FieldKind.MULTI_EXCLUSIVE:
            f = MultiField(options=list(column.options), **common)

    if cell.value != "":
        f.load(cell.value)
    return f


def load_value(f: Field, value: Any) -> None:
    """Load a decoded JSON value into a field."""
    if value is None:
        return
    if isinstance(value, (Decimal, float, int)) and not isinstance(value, bool):
        f.load(render_json_value(value))
    else:
        f.load(str(value))
