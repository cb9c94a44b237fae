"""Models for upstream items, decomposed paths and tree nodes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

# A directory maps its name to an ordered list of files (str) and subdirectories.
Entry = Union[str, "TreeNode"]
TreeNode = Dict[str, List[Entry]]


class Item(BaseModel):
    """One record of the upstream feed."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    file_url: str = Field(alias="fileUrl")


class ItemsPayload(BaseModel):
    """Body returned by the upstream endpoint."""

    items: List[Item]


@dataclass(frozen=True, slots=True)
class PathSegments:
    """Host followed by decoded path segments of a single URL."""

    segments: Tuple[str, ...]
    is_directory: bool

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError("PathSegments requires at least the host segment")

    @property
    def host(self) -> str:
        return self.segments[0]
