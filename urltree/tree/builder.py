"""Fold decomposed URLs into a nested, order-preserving directory tree."""
from __future__ import annotations

from typing import Iterable, List, Optional, Union

from urltree.tree.decompose import decompose_url
from urltree.tree.models import Entry, Item, PathSegments, TreeNode

Source = Union[PathSegments, Item, str]


def _find_directory(entries: List[Entry], name: str) -> Optional[TreeNode]:
    for entry in entries:
        if isinstance(entry, dict) and name in entry:
            return entry
    return None


def _has_file(entries: List[Entry], name: str) -> bool:
    return any(isinstance(entry, str) and entry == name for entry in entries)


def _as_segments(source: Source) -> PathSegments:
    if isinstance(source, PathSegments):
        return source
    if isinstance(source, Item):
        return decompose_url(source.file_url)
    return decompose_url(source)


class TreeBuilder:
    """Accumulates paths into a tree keyed by hostname.

    Entries keep the order in which they were first seen. A directory and a
    file sharing a name under the same parent are kept as separate entries.
    """

    def __init__(self) -> None:
        self._tree: TreeNode = {}

    @property
    def tree(self) -> TreeNode:
        return self._tree

    def add(self, path: PathSegments) -> None:
        """Insert one decomposed URL, creating missing directories on the way."""
        segments = path.segments
        last = len(segments) - 1
        entries = self._tree.setdefault(segments[0], [])
        for index in range(1, last + 1):
            name = segments[index]
            if index < last or path.is_directory:
                directory = _find_directory(entries, name)
                if directory is None:
                    directory = {name: []}
                    entries.append(directory)
                if index < last:
                    entries = directory[name]
            elif not _has_file(entries, name):
                entries.append(name)


def build_tree(sources: Iterable[Source]) -> TreeNode:
    """Build a tree from items, raw URLs or pre-decomposed paths.

    Any ``MalformedUrlError`` aborts the whole build.
    """
    builder = TreeBuilder()
    for source in sources:
        builder.add(_as_segments(source))
    return builder.tree
