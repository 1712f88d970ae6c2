"""Server inventory Protocol and public exports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import ServerRecord


@runtime_checkable
class InventoryClient(Protocol):
    """Protocol that every server inventory must satisfy."""

    def get_server_by_name(self, name: str) -> ServerRecord | None:
        """Return the server with exactly this name, or None."""
        ...

    def list_running_servers(self, label_selector: str = "") -> list[ServerRecord]:
        """Return all running servers matching the label selector."""
        ...
