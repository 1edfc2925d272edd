"""
User model definition for the cycle tracker.
"""
from typing import Optional
from pydantic import BaseModel


class User(BaseModel):
    """
    Represents an identity whose data can be tracked and shared.

    A user may share their data with at most one other user. The edge is
    directional: the grantee does not share anything back unless they set
    their own edge.
    """
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    shares_with: Optional[str] = None
