"""Row Provisioner: add and delete rows of dynamic grids."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from grid.model import CodeEntry
from runtime.errors import ServerError, TransportError
from runtime.notify import ToastKind
from runtime.rows import RowRecord

if TYPE_CHECKING:
    from runtime.grid import GridRuntime


log = logging.getLogger(__name__)


@dataclass
class RowSelector:
    """Searchable dropdown listing the codes a new row can be created for."""

    catalogue: list[CodeEntry] = field(default_factory=list)
    consumed: set[str] = field(default_factory=set)
    query: str = ""
    open: bool = False

    def visible_codes(self) -> list[CodeEntry]:
        needle = self.query.lower()
        return [
            c for c in self.catalogue
            if c.code not in self.consumed and needle in c.text.lower()
        ]

    def filter(self, query: str) -> list[CodeEntry]:
        self.query = query
        self.open = True
        return self.visible_codes()

    def reset(self) -> None:
        self.query = ""
        self.open = False


class RowProvisioner:
    def __init__(self, runtime: "GridRuntime"):
        self.runtime = runtime
        self.unique = runtime.variant.is_unique
        self.selector = RowSelector(catalogue=list(runtime.description.codes))

    async def add_row(self, code: str) -> RowRecord | None:
        """Fetch a new row for ``code`` and append it.

        In unique mode a code already present, or still being fetched, is
        refused. Its option stays hidden until that row is deleted.
        """
        rows = self.runtime.rows
        notifier = self.runtime.notifier
        if self.unique:
            if code in self.selector.consumed:
                notifier.show(f"A row for code {code} already exists", ToastKind.WARNING)
                return None
            self.selector.consumed.add(code)

        index = rows.allocate()
        try:
            row = await self.runtime.gateway.fetch_row(code, index)
        except (ServerError, TransportError) as e:
            if self.unique:
                self.selector.consumed.discard(code)
            log.error("adding row for code %s failed: %s", code, e)
            notifier.show(f"Failed to add row: {e}", ToastKind.ERROR)
            return None

        record = rows.add(RowRecord.from_row(row, index, self.runtime.settings))
        self.selector.reset()
        log.info("row %d added for code %s", index, code)
        return record

    def delete_row(self, index: int) -> RowRecord | None:
        record = self.runtime.rows.remove(index)
        if record is None:
            return None
        if self.unique:
            self.selector.consumed.discard(record.code)
        self.runtime.highlighted = {
            k: v for k, v in self.runtime.highlighted.items() if not k.startswith(f"{index}:")
        }
        log.info("row %d deleted (code %s)", index, record.code)
        return record
