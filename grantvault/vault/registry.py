"""
Grant registry: sequential id → active Grant.

Ids start at 0 and grow by one per insert. A finalized id is never
reused and stays absent forever. Only a retracted insert (one that
was never journaled) gives its id back. The registry has no lock of
its own; the vault serializes every call.
"""

from typing import Dict, Iterator, List, Optional, Tuple

from grantvault.core.exceptions import GrantNotFoundError
from grantvault.core.models import Grant


class GrantRegistry:

    def __init__(self) -> None:
        self._grants:  Dict[int, Grant] = {}
        self._next_id: int              = 0

    @property
    def next_id(self) -> int:
        """The id the next insert will receive (equals the number of grants ever created)."""
        return self._next_id

    def insert(self, grant: Grant) -> int:
        grant_id = self._next_id
        self._grants[grant_id] = grant
        self._next_id += 1
        return grant_id

    def get(self, grant_id: int) -> Optional[Grant]:
        """The active grant, or None. Ids that are not plain ints are never active."""
        if isinstance(grant_id, bool) or not isinstance(grant_id, int):
            return None
        return self._grants.get(grant_id)

    def require(self, grant_id: int) -> Grant:
        grant = self.get(grant_id)
        if grant is None:
            raise GrantNotFoundError(
                "The grant does not exist!",
                details={"grant_id": grant_id},
            )
        return grant

    def delete(self, grant_id: int) -> Grant:
        """Remove and return an active grant."""
        grant = self.require(grant_id)
        del self._grants[grant_id]
        return grant

    def retract(self, grant_id: int) -> Grant:
        """
        Undo the most recent insert, releasing its id for the next insert.

        Only the newest id is accepted, and only while it is still active.
        """
        if grant_id != self._next_id - 1 or grant_id not in self._grants:
            raise ValueError(f"grant id {grant_id} is not the latest active insert")
        grant = self._grants.pop(grant_id)
        self._next_id -= 1
        return grant

    def reinstate(self, grant_id: int, grant: Grant) -> None:
        """
        Put back a grant deleted by the current operation.

        Only ids already issued and currently absent are accepted, so the
        counter is never affected.
        """
        if not 0 <= grant_id < self._next_id:
            raise ValueError(f"grant id {grant_id} was never issued")
        if grant_id in self._grants:
            raise ValueError(f"grant id {grant_id} is already active")
        self._grants[grant_id] = grant

    def total_locked(self) -> int:
        return sum(g.amount for g in self._grants.values())

    def active_ids(self) -> List[int]:
        return sorted(self._grants)

    def items(self) -> Iterator[Tuple[int, Grant]]:
        for grant_id in sorted(self._grants):
            yield grant_id, self._grants[grant_id]

    def __contains__(self, grant_id: object) -> bool:
        return grant_id in self._grants

    def __len__(self) -> int:
        return len(self._grants)

    def __repr__(self) -> str:
        return f"GrantRegistry(active={len(self._grants)}, next_id={self._next_id})"
