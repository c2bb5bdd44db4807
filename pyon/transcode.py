"""Byte-level rewrite of Python boolean literals inside slot bodies.

The daemon writes ``"idle": True`` / ``"idle": False``; the JSON parser only
knows ``true`` / ``false``.  :class:`BooleanTranscoder` is a small automaton that
watches for the key text and lowercases the first byte of the value that follows
it.  Its match position lives on the instance, so the key and the value may be
split over any number of ``feed`` calls.
"""

from __future__ import annotations

from typing import Dict, List

IDLE_KEY = b'"idle": '

_LOWERCASE: Dict[int, int] = {ord("T"): ord("t"), ord("F"): ord("f")}


def _failure_table(pattern: bytes) -> List[int]:
    table = [0] * len(pattern)
    k = 0
    for i in range(1, len(pattern)):
        while k and pattern[i] != pattern[k]:
            k = table[k - 1]
        if pattern[i] == pattern[k]:
            k += 1
        table[i] = k
    return table


class BooleanTranscoder:
    """Streaming ``True``/``False`` -> ``true``/``false`` rewrite after a fixed key.

    ``matched`` counts how many bytes of the key have been seen; when it equals
    the key length the next byte is the value and gets substituted.
    """

    def __init__(self, key: bytes = IDLE_KEY) -> None:
        if not key:
            raise ValueError("key pattern must not be empty")
        self.key = key
        self.matched = 0
        self._failure = _failure_table(key)

    @property
    def substituting(self) -> bool:
        return self.matched == len(self.key)

    def feed(self, data: bytes) -> bytes:
        out = bytearray(data)
        key = self.key
        matched = self.matched
        for i, byte in enumerate(out):
            if matched == len(key):
                out[i] = _LOWERCASE.get(byte, byte)
                matched = 0
            while matched and byte != key[matched]:
                matched = self._failure[matched - 1]
            if byte == key[matched]:
                matched += 1
        self.matched = matched
        return bytes(out)


__all__ = ["IDLE_KEY", "BooleanTranscoder"]
