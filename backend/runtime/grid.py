"""Grid Runtime: field events, row validation and the save state machine.

The runtime holds everything a rendered grid needs between events: the
ordered rows and their field states, the highlighted option of each open
dropdown, and whether a save is in flight. It is driven by explicit event
calls so any surface (a browser bridge, a terminal UI, tests) can host it.
"""

import json
import logging
import math
import time
from collections.abc import Callable
from decimal import Decimal
from enum import Enum

from grid.model import TableDescription
from grid.populator import row_code_key
from runtime.errors import ServerError, TransportError
from runtime.fields import ChoiceField, Field, MultiField, NumberField, TextField
from runtime.gateway import PersistenceGateway
from runtime.notify import Notifier, ToastKind
from runtime.provisioner import RowProvisioner
from runtime.rows import RowCollection, RowRecord, serialize_rows
from runtime.settings import RuntimeSettings


log = logging.getLogger(__name__)

# Highlight key of the dynamic grid's row selector.
SELECTOR_ID = "row-selector"

ROW_INVALID_MESSAGE = "Fill in the required fields in this row"
FORM_INVALID_MESSAGE = "The form contains errors"
NOTHING_TO_SAVE_MESSAGE = "Nothing to save"
SAVED_MESSAGE = "Saved"


class GridState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SAVING = "saving"


class GridRuntime:
    def __init__(
        self,
        description: TableDescription,
        gateway: PersistenceGateway,
        settings: RuntimeSettings | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.description = description
        self.variant = description.variant
        self.gateway = gateway
        self.settings = settings or RuntimeSettings()
        self.notifier = notifier or Notifier(self.settings.toast_duration_ms)
        self.clock = clock

        self.state = GridState.IDLE
        self.last_save_time: float | None = None
        self.rows = RowCollection()
        self.highlighted: dict[str, int] = {}

        self.provisioner: RowProvisioner | None = None
        if self.variant.is_dynamic:
            self.provisioner = RowProvisioner(self)
        else:
            for row in description.rows:
                self.rows.add(RowRecord.from_row(row, self.rows.allocate(), self.settings))

    @classmethod
    async def start(
        cls,
        description: TableDescription,
        gateway: PersistenceGateway,
        **kwargs,
    ) -> "GridRuntime":
        """Build a runtime and replay any rows saved for a dynamic grid."""
        runtime = cls(description, gateway, **kwargs)
        await runtime.load_existing()
        return runtime

    @property
    def is_dynamic(self) -> bool:
        return self.provisioner is not None

    def field(self, field_id: str) -> Field | None:
        found = self.rows.find_field(field_id)
        return found[1] if found else None

    def _locate(self, field_id: str) -> tuple[RowRecord, Field]:
        found = self.rows.find_field(field_id)
        if found is None:
            raise KeyError(field_id)
        return found

    # Dynamic rows

    async def load_existing(self) -> int:
        """Re-create dynamic rows from the saved payload, in saved order."""
        if self.provisioner is None or not self.description.data:
            return 0
        try:
            data = json.loads(self.description.data, parse_float=Decimal)
        except json.JSONDecodeError as e:
            log.warning("saved rows not replayed: %s", e.msg)
            return 0
        if data == []:
            return 0
        if not isinstance(data, list) or not isinstance(data[0], dict):
            log.warning("saved rows not replayed: expected a list of objects")
            return 0

        key = row_code_key(data[0])
        if key is None:
            log.warning("saved rows not replayed: no code field")
            return 0

        loaded = 0
        for entry in data:
            if not isinstance(entry, dict):
                continue
            code = entry.get(key)
            if not isinstance(code, str) or not code:
                continue
            record = await self.provisioner.add_row(code)
            if record is None:
                continue
            record.load(entry)
            loaded += 1
        return loaded

    async def add_row(self, code: str) -> RowRecord | None:
        if self.provisioner is None:
            return None
        return await self.provisioner.add_row(code)

    def delete_row(self, index: int) -> RowRecord | None:
        if self.provisioner is None:
            return None
        return self.provisioner.delete_row(index)

    # Field events

    def on_focus(self, field_id: str) -> None:
        if field_id == SELECTOR_ID:
            if self.provisioner is not None:
                self.provisioner.selector.open = True
                self.highlighted[SELECTOR_ID] = -1
            return
        for f in self.rows.fields():
            f.popup_visible = False
            if isinstance(f, ChoiceField) and f.id != field_id:
                f.open = False
        _, f = self._locate(field_id)
        f.popup_visible = f.error is not None
        if isinstance(f, ChoiceField) and not f.readonly:
            f.open = True
            self.highlighted[field_id] = -1

    def on_blur(self, field_id: str) -> None:
        if field_id == SELECTOR_ID:
            return
        record, f = self._locate(field_id)
        f.popup_visible = False
        if isinstance(f, NumberField):
            f.blur()
        if not record.has_data():
            record.clear_errors()

    def on_input(self, field_id: str, text: str) -> None:
        if field_id == SELECTOR_ID:
            if self.provisioner is not None:
                self.provisioner.selector.filter(text)
                self.highlighted[SELECTOR_ID] = -1
            return

        record, f = self._locate(field_id)
        if f.readonly:
            return
        match f:
            case NumberField() | TextField():
                f.input(text)
                f.popup_visible = f.error is not None
            case ChoiceField():
                f.filter(text)
                self.highlighted[field_id] = -1
            case MultiField():
                return
        if not record.has_data():
            record.clear_errors()

    async def on_keydown(self, field_id: str, key: str) -> bool:
        """Handle a key press; returns False when the key must be rejected."""
        if field_id == SELECTOR_ID:
            await self._selector_keydown(key)
            return True

        record, f = self._locate(field_id)
        match f:
            case ChoiceField():
                await self._choice_keydown(record, f, key)
            case TextField() if not f.accepts_key(key):
                return False
            case NumberField() | TextField() | MultiField():
                if key == "Enter":
                    await self._save_row(record, toast=True)
        return True

    async def on_pick(self, field_id: str, value: str) -> bool:
        """Commit an option clicked in a field's dropdown."""
        record, f = self._locate(field_id)
        if not isinstance(f, ChoiceField) or f.readonly or f.commit(value) is None:
            return False
        self.highlighted.pop(field_id, None)
        return await self._save_row(record, toast=True)

    async def on_check(self, field_id: str, value: str, checked: bool) -> bool:
        record, f = self._locate(field_id)
        if not isinstance(f, MultiField) or f.readonly:
            return False
        f.change(value, checked)
        return await self._save_row(record, toast=False)

    async def on_select_code(self, code: str) -> RowRecord | None:
        """A code clicked in the row selector."""
        self.highlighted.pop(SELECTOR_ID, None)
        return await self.add_row(code)

    def _move_highlight(self, key_id: str, count: int, key: str) -> int:
        index = self.highlighted.get(key_id, -1)
        if key == "ArrowDown":
            index = min(index + 1, count - 1)
        elif key == "ArrowUp":
            index = max(index - 1, 0)
        self.highlighted[key_id] = index
        return index

    async def _choice_keydown(self, record: RowRecord, f: ChoiceField, key: str) -> None:
        if key == "Escape":
            f.open = False
            return
        if key == "ArrowDown" and not f.open:
            f.open = True
            return
        if not f.open:
            return

        options = f.visible_options()
        if key in ("ArrowDown", "ArrowUp"):
            self._move_highlight(f.id, len(options), key)
        elif key == "Enter":
            index = self.highlighted.get(f.id, -1)
            if 0 <= index < len(options):
                f.commit(options[index].value)
                self.highlighted.pop(f.id, None)
                await self._save_row(record, toast=True)

    async def _selector_keydown(self, key: str) -> None:
        if self.provisioner is None:
            return
        selector = self.provisioner.selector
        if key == "Escape":
            selector.open = False
            return
        if key == "ArrowDown" and not selector.open:
            selector.open = True
            return
        if not selector.open:
            return

        codes = selector.visible_codes()
        if key in ("ArrowDown", "ArrowUp"):
            self._move_highlight(SELECTOR_ID, len(codes), key)
        elif key == "Enter":
            index = self.highlighted.get(SELECTOR_ID, -1)
            if 0 <= index < len(codes):
                await self.on_select_code(codes[index].code)

    # Validation and saving

    def validate_all(self) -> bool:
        valid = True
        for record in self.rows:
            if not record.validate():
                valid = False
        return valid

    def serialize(self):
        return serialize_rows(self.rows, self.variant)

    async def _save_row(self, record: RowRecord, toast: bool) -> bool:
        """Validate one row and save the grid when it passes."""
        if self.state is GridState.SAVING:
            return False
        self.state = GridState.VALIDATING
        if not record.validate():
            self.state = GridState.IDLE
            if toast:
                self.notifier.show(ROW_INVALID_MESSAGE, ToastKind.ERROR)
            return False
        self.state = GridState.IDLE
        return await self.save()

    async def save(self) -> bool:
        """Validate the whole grid and send it as one replacement payload.

        Returns True only when the server accepted the payload. A save
        already in flight makes this a no-op.
        """
        if self.state is GridState.SAVING:
            return False

        if self.last_save_time is not None:
            elapsed_ms = (self.clock() - self.last_save_time) * 1000
            cooldown_ms = self.settings.save_cooldown_ms
            if elapsed_ms < cooldown_ms:
                remaining = math.ceil((cooldown_ms - elapsed_ms) / 1000)
                self.notifier.show(f"Wait {remaining}s before saving again", ToastKind.WARNING)
                return False

        self.state = GridState.VALIDATING
        if not self.validate_all():
            self.state = GridState.IDLE
            self.notifier.show(FORM_INVALID_MESSAGE, ToastKind.ERROR)
            return False

        payload = self.serialize()
        if not payload:
            self.state = GridState.IDLE
            self.notifier.show(NOTHING_TO_SAVE_MESSAGE, ToastKind.WARNING)
            return False

        self.state = GridState.SAVING
        try:
            await self.gateway.submit(payload)
        except (ServerError, TransportError) as e:
            log.error("save failed: %s", e)
            self.notifier.show(f"Save failed: {e}", ToastKind.ERROR)
            return False
        finally:
            self.state = GridState.IDLE

        now = self.clock()
        self.last_save_time = now
        flash_until = now + self.settings.success_flash_ms / 1000
        for record in self.rows:
            if record.has_data():
                record.flash_success(flash_until)
        self.notifier.show(SAVED_MESSAGE, ToastKind.SUCCESS)
        return True
