"""
Live lobby roster: which connection is playing under which name.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .constants import FIRST_SUFFIX, INVALID_NAME_REASON, NAME_SUFFIX_SEPARATOR
from .errors import INVALID_NAME

logger = logging.getLogger(__name__)


class JoinResult:
    """Result of resolving a join or resume request."""

    def __init__(
        self,
        success: bool,
        name: Optional[str] = None,
        disambiguated: bool = False,
        evicted: Optional[str] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None
    ):
        self.success = success
        self.name = name
        self.disambiguated = disambiguated
        self.evicted = evicted
        self.error_code = error_code
        self.error_message = error_message

    @classmethod
    def accepted(cls, name: str, disambiguated: bool = False,
                 evicted: Optional[str] = None) -> 'JoinResult':
        """Create an accepted join result."""
        return cls(success=True, name=name, disambiguated=disambiguated, evicted=evicted)

    @classmethod
    def rejected(cls, error_code: str, error_message: str) -> 'JoinResult':
        """Create a rejected join result."""
        return cls(success=False, error_code=error_code, error_message=error_message)


class IdentityRegistry:
    """Maps connection ids to display names, keeping names unique."""

    def __init__(self):
        self._names: Dict[str, str] = {}

    def resolve_join(self, connection_id: str, requested_name: str, resume: bool = False) -> JoinResult:
        """
        Register a connection under a display name.

        A resume reclaims the name verbatim and evicts whichever other
        connection held it. A plain join that collides with another
        connection gets the lowest free ``name#N`` suffix, starting at 2.

        Args:
            connection_id: Connection asking to join
            requested_name: Name the client asked for
            resume: Whether the client is reclaiming a previous identity

        Returns:
            JoinResult with the final name, or a rejection for empty names
        """
        name = (requested_name or '').strip()
        if not name:
            return JoinResult.rejected(INVALID_NAME, INVALID_NAME_REASON)

        holder = self._holder_of(name, exclude=connection_id)

        if resume:
            if holder is not None:
                del self._names[holder]
                logger.debug(f"Connection {connection_id} resumed '{name}', evicting stale connection {holder}")
            self._names[connection_id] = name
            return JoinResult.accepted(name, evicted=holder)

        if holder is None:
            self._names[connection_id] = name
            return JoinResult.accepted(name)

        final_name = self._free_suffixed_name(name, exclude=connection_id)
        self._names[connection_id] = final_name
        logger.info(f"Name '{name}' taken, connection {connection_id} joins as '{final_name}'")
        return JoinResult.accepted(final_name, disambiguated=True)

    def remove(self, connection_id: str) -> Optional[str]:
        return self._names.pop(connection_id, None)

    def roster(self) -> List[str]:
        return list(self._names.values())

    def name_for(self, connection_id: str) -> Optional[str]:
        return self._names.get(connection_id)

    def identities(self) -> List[Tuple[str, str]]:
        """(connection_id, name) pairs in join order."""
        return list(self._names.items())

    def __len__(self) -> int:
        return len(self._names)

    def _holder_of(self, name: str, exclude: str) -> Optional[str]:
        for connection_id, held in self._names.items():
            if held == name and connection_id != exclude:
                return connection_id
        return None

    def _free_suffixed_name(self, name: str, exclude: str) -> str:
        taken = {held for cid, held in self._names.items() if cid != exclude}
        suffix = FIRST_SUFFIX
        while f"{name}{NAME_SUFFIX_SEPARATOR}{suffix}" in taken:
            suffix += 1
        return f"{name}{NAME_SUFFIX_SEPARATOR}{suffix}"
