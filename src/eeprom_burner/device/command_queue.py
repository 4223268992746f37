"""FIFO of pending operations. The head is the only operation in flight."""

from collections import deque
from typing import Deque, Iterator, Optional

from .operation import Operation


class CommandQueue:
    """Strict-FIFO queue; never reorders, never has two heads."""

    def __init__(self):
        self._items: Deque[Operation] = deque()

    def enqueue(self, op: Operation) -> bool:
        """
        Append an operation to the tail.

        Returns:
            True if the operation is now the sole element, meaning the caller
            must start transmitting it.
        """
        self._items.append(op)
        return len(self._items) == 1

    def peek_head(self) -> Optional[Operation]:
        return self._items[0] if self._items else None

    def dequeue_head(self) -> Operation:
        """
        Remove the head. Only call once its exchange is complete
        (including error termination).

        Raises:
            IndexError: If the queue is empty.
        """
        if not self._items:
            raise IndexError("dequeue from an empty CommandQueue")
        return self._items.popleft()

    def clear(self) -> None:
        self._items.clear()

    @property
    def empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self._items)
