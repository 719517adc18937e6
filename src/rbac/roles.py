"""
ThreadCraft - Role Definitions

5 roles, one per participant in an order's lifecycle:

    INTERNAL
    ├── admin         - Full access, can drive any transition
    ├── salesperson   - Owns the customer relationship, reviews work
    ├── designer      - Produces designs for assigned design tasks
    └── manufacturer  - Produces garments for assigned production tasks

    EXTERNAL
    └── customer      - Places orders, follows progress
"""

from enum import Enum
from typing import FrozenSet


class Role(str, Enum):
    """
    All 5 roles in the system.

    Naming convention: UPPER_SNAKE_CASE for enum, lower_snake_case for value.
    """

    ADMIN = "admin"
    SALESPERSON = "salesperson"
    DESIGNER = "designer"
    MANUFACTURER = "manufacturer"
    CUSTOMER = "customer"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def is_reviewer(self) -> bool:
        """Whether this role approves or rejects submitted work."""
        return self in REVIEWER_ROLES

    @classmethod
    def from_string(cls, value: str) -> "Role":
        """Parse a role name; raises ValueError for unknown roles."""
        return cls(value.strip().lower())


REVIEWER_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.SALESPERSON})
