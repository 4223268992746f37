"""Operation descriptors queued by the CommandEngine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Tuple, Union


class OperationKind(Enum):
    """Operation kinds, valued with their hexadecimal-mode command character."""
    READ = 'R'
    WRITE = 'W'
    FILL = 'F'


@dataclass
class Operation:
    """
    One read, write or fill request against the device address space.

    Exactly one payload field is meaningful per kind: `buffer` or `source_path`
    for writes, `fill_value` for fills. Reads deliver into `sink_path`, else
    `callback`, else stdout. `parent` links a file-write chunk to the file
    transfer it belongs to.
    """
    kind: OperationKind
    address: int
    length: int
    buffer: Optional[bytes] = None
    source_path: Optional[str] = None
    fill_value: Union[int, str, None] = None
    sink_path: Optional[str] = None
    callback: Optional[Callable[[bytes], None]] = None
    binary: bool = False
    parent: Optional["Operation"] = None
    # Engine-private bookkeeping
    bytes_transferred: int = field(default=0, compare=False)

    @property
    def command_char(self) -> str:
        char = self.kind.value
        return char.lower() if self.binary else char

    @property
    def is_file_write(self) -> bool:
        return self.kind is OperationKind.WRITE and self.source_path is not None and self.buffer is None

    @property
    def progress_window(self) -> Tuple[int, int]:
        """(address, length) that progress reports are measured against."""
        owner = self.parent if self.parent is not None else self
        return owner.address, owner.length

    def __str__(self) -> str:
        target = self.sink_path or self.source_path or ''
        return (f"{self.kind.name} addr=0x{self.address:04x} len={self.length}"
                f"{' ' + target if target else ''}")
