"""
Per-session filesystem state.

Holds the active provider binding, the files selected into the chat
context and a dirty flag. The state is passed explicitly into every
FileSystemService call.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from agent_filesystem.providers.base import IgnoreFilter


@dataclass
class FileSystemState:
    """
    Session-scoped filesystem state.

    Attributes:
        active_provider: Name of the provider this session is bound to
        selected_files: Files attached to the chat context
        initial_selected_files: Selection restored by ``reset``
        dirty: Set when a mutating operation succeeds; advisory only
        ignore_filter: Cached ignore predicate for the active provider
    """

    active_provider: Optional[str] = None
    selected_files: set[str] = field(default_factory=set)
    initial_selected_files: frozenset[str] = field(default_factory=frozenset)
    dirty: bool = False
    ignore_filter: Optional[IgnoreFilter] = field(default=None, repr=False)

    @classmethod
    def create(
        cls,
        selected_files: Iterable[str] = (),
        active_provider: Optional[str] = None,
    ) -> "FileSystemState":
        files = frozenset(selected_files)
        return cls(
            active_provider=active_provider,
            selected_files=set(files),
            initial_selected_files=files,
        )

    def reset(self) -> None:
        """Restore the initial selection and clear the dirty flag."""
        self.selected_files = set(self.initial_selected_files)
        self.dirty = False

    def serialize(self) -> dict[str, Any]:
        return {
            "active_provider": self.active_provider,
            "selected_files": sorted(self.selected_files),
        }

    def deserialize(self, data: dict[str, Any]) -> None:
        """Restore state produced by ``serialize``."""
        self.selected_files = set(data.get("selected_files", []))
        if "active_provider" in data:
            self.active_provider = data["active_provider"]
            self.ignore_filter = None

    def show(self) -> list[str]:
        """Human-readable summary lines."""
        return [f"Selected Files: {len(self.selected_files)}"] + [
            f"  - {f}" for f in sorted(self.selected_files)
        ]
