"""
Cursor over message content used to parse prefix invocations.
"""

from __future__ import annotations

from collections.abc import Callable


class Stream:
    def __init__(self, src: str, offset: int = 0):
        self.src = src
        self.offset = offset

    def rest(self) -> str:
        return self.src[self.offset :]

    def is_empty(self) -> bool:
        return self.offset >= len(self.src)

    def starts_with(self, prefix: str) -> bool:
        return self.src.startswith(prefix, self.offset)

    def increment(self, amount: int) -> None:
        self.offset = min(len(self.src), self.offset + amount)

    def take_while(self, predicate: Callable[[str], bool]) -> str:
        start = self.offset
        while self.offset < len(self.src) and predicate(self.src[self.offset]):
            self.offset += 1
        return self.src[start : self.offset]

    def take_until(self, predicate: Callable[[str], bool]) -> str:
        return self.take_while(lambda c: not predicate(c))

    def skip_whitespace(self) -> None:
        self.take_while(str.isspace)


class Args:
    """Whitespace separated arguments following a prefix command name."""

    def __init__(self, content: str, stream: Stream, num: int | None = None):
        self.content = content
        self.num = num
        self._tokens = stream.rest().split()
        self._pos = 0

    def __iter__(self):
        return self

    def __next__(self) -> str:
        if self._pos >= len(self._tokens):
            raise StopIteration
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def next(self) -> str | None:
        return next(self, None)

    def rest(self) -> list[str]:
        tokens = self._tokens[self._pos :]
        self._pos = len(self._tokens)
        return tokens
