"""
Inbound framing: turns raw link chunks into protocol tokens.

The device separates messages with a NUL byte and ends a message with '%'.
Chunk boundaries are not message boundaries, but control words are assumed
to arrive whole inside one chunk; they are never reassembled.
"""

from dataclasses import dataclass
from typing import List

from .codec import END_OF_MESSAGE, MESSAGE_SEPARATOR

# Control words sent by the device
BEGIN_READ = 'beginRead'
BEGIN_WRITE = 'beginWrite'
BEGIN_FILL = 'beginFill'
BEGIN_ERROR = 'beginError'
BEGIN_PROGRESS = 'beginProgress'

CONTROL_WORDS = frozenset([BEGIN_READ, BEGIN_WRITE, BEGIN_FILL, BEGIN_ERROR, BEGIN_PROGRESS])


@dataclass(frozen=True)
class Token:
    """
    One parsed unit of inbound data.

    `raw` keeps the exact bytes (8-bit payload survives), `text` is its
    latin-1 decoding, used for control word and numeral comparisons.
    """
    raw: bytes
    is_end: bool = False

    @property
    def text(self) -> str:
        return self.raw.decode('latin-1')

    @property
    def is_control(self) -> bool:
        return not self.is_end and self.text in CONTROL_WORDS

    def __repr__(self) -> str:
        if self.is_end:
            return "Token(END)"
        return f"Token({self.raw!r})"


END_TOKEN = Token(raw=END_OF_MESSAGE, is_end=True)


class FrameSplitter:
    """Splits raw byte chunks into an ordered list of tokens."""

    def __init__(self, separator: bytes = MESSAGE_SEPARATOR, terminator: bytes = END_OF_MESSAGE):
        self.separator = separator
        self.terminator = terminator

    def split(self, chunk: bytes) -> List[Token]:
        """
        Split one chunk.

        Each separator-delimited segment becomes one data/control token. If the
        segment holds the terminator, the bytes before it are emitted followed
        by END, and whatever follows the terminator in that segment is dropped.
        Empty data segments are not emitted.
        """
        tokens: List[Token] = []
        for segment in bytes(chunk).split(self.separator):
            end_pos = segment.find(self.terminator)
            if end_pos != -1:
                if end_pos > 0:
                    tokens.append(Token(raw=segment[:end_pos]))
                tokens.append(END_TOKEN)
            elif segment:
                tokens.append(Token(raw=segment))
        return tokens
