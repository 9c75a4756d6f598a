"""
Single-administrator gate for grant creation.

The administrator is an explicit value held by the gate, set at
construction and checked by reference on every privileged call.
The gate itself is not locked; the vault calls it under its own lock.
"""

from grantvault.core.exceptions import UnauthorizedError
from grantvault.core.identity import normalize_address, require_address


class AdministratorGate:

    def __init__(self, administrator: str) -> None:
        self._administrator = require_address(administrator, "administrator")

    def current_administrator(self) -> str:
        return self._administrator

    def require_administrator(self, caller: str) -> None:
        """Raise UnauthorizedError unless `caller` is the administrator. No side effects."""
        if not isinstance(caller, str) or normalize_address(caller) != self._administrator:
            raise UnauthorizedError(
                "Ownable: caller is not the owner",
                details={"caller": caller},
            )

    def transfer(self, caller: str, new_administrator: str) -> str:
        """Hand the role to `new_administrator`. Returns the previous administrator."""
        self.require_administrator(caller)
        new_norm = require_address(new_administrator, "administrator")
        previous, self._administrator = self._administrator, new_norm
        return previous

    def __repr__(self) -> str:
        return f"AdministratorGate(administrator={self._administrator!r})"
