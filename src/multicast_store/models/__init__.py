from .keys import EUI64
from .membership import MembershipCreate, MembershipInDB

__all__ = [
    "EUI64", "MembershipCreate", "MembershipInDB",
]
