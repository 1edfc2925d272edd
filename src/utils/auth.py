"""
Authorization utilities for directional data sharing.

Every user may share their data with exactly one other user. The grantee
can then read and edit the owner's cycles; the owner gains nothing in
return. Grants are not transitive.
"""
from typing import Optional, Set

from aws_lambda_powertools import Logger
from src.models.user import User
from src.services.exceptions import AuthorizationError, NotFoundError
from src.services.storage import CycleStore

logger = Logger()

class Authorization:
    """Access grant resolver backed by a cycle store."""

    def __init__(self, store: CycleStore):
        """
        Initialize Authorization utility.

        Args:
            store: Storage backend holding user profiles and share edges
        """
        self.store = store

    def can_act(self, actor_id: str, target_id: str) -> bool:
        """
        Check if actor may read and write target's data.

        Args:
            actor_id: User performing the request
            target_id: User whose data is being accessed

        Returns:
            bool: True if actor is the target or the target shares with actor
        """
        if actor_id == target_id:
            return True

        target = self.store.get_user(target_id)
        allowed = bool(target and target.shares_with == actor_id)

        logger.debug("Access grant check", extra={
            "actor_id": actor_id,
            "target_id": target_id,
            "target_found": target is not None,
            "is_authorized": allowed
        })
        return allowed

    def require_access(self, actor_id: str, target_id: str) -> None:
        """
        Ensure actor may act on target's data.

        Raises:
            AuthorizationError: If can_act returns False
        """
        if not self.can_act(actor_id, target_id):
            logger.warning("Unauthorized access attempt", extra={
                "actor_id": actor_id,
                "target_id": target_id
            })
            raise AuthorizationError(
                f"User {actor_id} is not authorized to access data of user {target_id}"
            )

    def list_visible_to(self, actor_id: str) -> Set[str]:
        """
        Get the IDs of every user whose data actor can see.

        Args:
            actor_id: User performing the request

        Returns:
            Set containing actor_id and every user sharing with actor
        """
        return {actor_id, *self.store.list_sharing_with(actor_id)}

    def set_share(self, owner_id: str, grantee: str) -> User:
        """
        Share owner's data with another user, replacing any previous grant.

        The grantee does not need to consent and is not granted access in the
        other direction.

        Args:
            owner_id: User sharing their data
            grantee: Grantee user ID or email address

        Returns:
            The grantee user

        Raises:
            NotFoundError: If no user matches grantee
        """
        grantee_user = self._resolve_user(grantee)
        if grantee_user is None:
            raise NotFoundError(f"User {grantee} not found")

        self.store.set_shares_with(owner_id, grantee_user.user_id)
        logger.info("Share edge updated", extra={
            "owner_id": owner_id,
            "grantee_id": grantee_user.user_id
        })
        return grantee_user

    def clear_share(self, owner_id: str) -> None:
        """
        Stop sharing owner's data with anyone.

        Args:
            owner_id: User revoking their grant
        """
        self.store.set_shares_with(owner_id, None)
        logger.info("Share edge removed", extra={"owner_id": owner_id})

    def _resolve_user(self, email_or_id: str) -> Optional[User]:
        key = email_or_id.strip()
        if not key:
            return None
        user = self.store.get_user(key)
        if user is None and "@" in key:
            user = self.store.find_user_by_email(key)
        return user
