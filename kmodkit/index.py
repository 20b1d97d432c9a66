"""In-memory radix trie and writer for the binary module index format."""

from __future__ import annotations

import io
import struct
from dataclasses import dataclass, field
from typing import BinaryIO

INDEX_MAGIC = 0xB007F457
INDEX_VERSION_MAJOR = 0x0002
INDEX_VERSION_MINOR = 0x0001
INDEX_VERSION = (INDEX_VERSION_MAJOR << 16) | INDEX_VERSION_MINOR
INDEX_CHILDMAX = 128

INDEX_NODE_FLAGS = 0xF0000000
INDEX_NODE_PREFIX = 0x80000000
INDEX_NODE_VALUES = 0x40000000
INDEX_NODE_CHILDS = 0x20000000
INDEX_NODE_MASK = 0x0FFFFFFF


class BadIndexCharacter(ValueError):
    """A key or value holds a character outside 7-bit ASCII."""


def _check_string(text: str) -> None:
    for ch in text:
        if ord(ch) >= INDEX_CHILDMAX:
            raise BadIndexCharacter(
                f"Module index: bad character {ch!r}=0x{ord(ch):x} - "
                f"only 7-bit ASCII is supported:\n{text}"
            )


@dataclass
class IndexValue:
    value: str
    priority: int


@dataclass
class IndexNode:
    """A trie node; children are keyed by character code."""

    prefix: str = ""
    values: list[IndexValue] = field(default_factory=list)
    children: dict[int, "IndexNode"] = field(default_factory=dict)

    def _add_value(self, value: str, priority: int) -> bool:
        duplicate = any(v.value == value for v in self.values)
        pos = next(
            (i for i, v in enumerate(self.values) if v.priority >= priority),
            len(self.values),
        )
        self.values.insert(pos, IndexValue(value, priority))
        return duplicate

    def _split(self, at: int) -> None:
        ch = ord(self.prefix[at])
        child = IndexNode(self.prefix[at + 1:], self.values, self.children)
        self.prefix = self.prefix[:at]
        self.values = []
        self.children = {ch: child}

    def insert(self, key: str, value: str, priority: int) -> bool:
        """Add value under key; return True if the value was already there."""
        _check_string(key)
        _check_string(value)
        node = self
        i = 0
        while True:
            for j, ch in enumerate(node.prefix):
                if i + j >= len(key) or key[i + j] != ch:
                    node._split(j)
                    break
            i += len(node.prefix)

            if i == len(key):
                return node._add_value(value, priority)

            code = ord(key[i])
            child = node.children.get(code)
            if child is None:
                child = IndexNode(key[i + 1:])
                child._add_value(value, priority)
                node.children[code] = child
                return False
            node = child
            i += 1

    def _write_node(self, out: BinaryIO) -> int:
        child_offsets: list[int] = []
        if self.children:
            first, last = min(self.children), max(self.children)
            for code in range(first, last + 1):
                child = self.children.get(code)
                child_offsets.append(child._write_node(out) if child else 0)

        offset = out.tell()
        if self.prefix:
            out.write(self.prefix.encode("ascii") + b"\0")
            offset |= INDEX_NODE_PREFIX
        if child_offsets:
            out.write(bytes([first, last]))
            out.write(struct.pack(f">{len(child_offsets)}I", *child_offsets))
            offset |= INDEX_NODE_CHILDS
        if self.values:
            out.write(struct.pack(">I", len(self.values)))
            for v in self.values:
                out.write(struct.pack(">I", v.priority))
                out.write(v.value.encode("ascii") + b"\0")
            offset |= INDEX_NODE_VALUES
        return offset

    def write(self, stream: BinaryIO) -> None:
        """Write the whole trie to a seekable binary stream."""
        stream.write(struct.pack(">II", INDEX_MAGIC, INDEX_VERSION))
        root_slot = stream.tell()
        stream.write(struct.pack(">I", 0))
        root = self._write_node(stream)
        end = stream.tell()
        stream.seek(root_slot)
        stream.write(struct.pack(">I", root))
        stream.seek(end)

    def to_bytes(self) -> bytes:
        buf = io.BytesIO()
        self.write(buf)
        return buf.getvalue()