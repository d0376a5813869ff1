"""Registry of the identity most recently announced on each live connection."""
from typing import Any, Dict, List, Optional


class ConnectionRegistry:
    """Maps connection ids to announced identity payloads.

    Payloads are stored exactly as received so the departure announcement
    repeats what the connection last said about itself. Several connections
    may announce the same ``userId``; each keeps its own entry.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Any] = {}

    def register(self, connection_id: str, identity: Any) -> bool:
        """Insert or overwrite; return True if the connection was already known."""
        existed = connection_id in self._entries
        self._entries[connection_id] = identity
        return existed

    def lookup(self, connection_id: str) -> Optional[Any]:
        return self._entries.get(connection_id)

    def remove(self, connection_id: str) -> Optional[Any]:
        return self._entries.pop(connection_id, None)

    def online(self) -> List[Any]:
        return list(self._entries.values())

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
