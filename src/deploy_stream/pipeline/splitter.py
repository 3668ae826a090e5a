"""Line splitter.

Reassembles newline-terminated logical lines from arbitrarily sized text
fragments. The unterminated tail is carried over to the next feed().

The splitter never filters content: empty lines are returned like any other
line and it is up to the classifier to skip them. Only "\\n" separates lines;
a "\\r" stays part of the line.

Example:
    >>> sp = LineSplitter()
    >>> sp.feed("[SETUP] load")
    []
    >>> sp.feed("ing\\n[TRAIN]")
    ['[SETUP] loading']
    >>> sp.flush()
    '[TRAIN]'
"""

from __future__ import annotations
from typing import List, Optional

NEWLINE = "\n"


class LineSplitter:
    """Splits one stream. Not shared between sessions."""

    def __init__(self) -> None:
        self.buffer = ""

    def feed(self, fragment: str) -> List[str]:
        if not fragment:
            return []
        self.buffer += fragment
        pieces = self.buffer.split(NEWLINE)
        if len(pieces) == 1:
            return []
        # last piece is the new tail; empty when the input ended on a line boundary
        self.buffer = pieces.pop()
        return pieces

    def flush(self) -> Optional[str]:
        """Return the unterminated tail as a final line, if there is one."""
        tail, self.buffer = self.buffer, ""
        return tail or None

    @property
    def pending(self) -> bool:
        return bool(self.buffer)
