"""
Identity provider (Supabase Auth) admin operations.

SECURITY NOTICE:
- SUPABASE_SERVICE_ROLE_KEY is server-only and bypasses RLS
- Only used for operations that must act on other users (account deletion)
"""
import logging
from functools import lru_cache

from supabase import Client, create_client

from clmp.core.config import SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY
from clmp.core.errors import UpstreamFailureError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """
    Get Supabase admin client for server-side operations.

    Returns:
        Client: Supabase admin client instance

    Raises:
        RuntimeError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is not set
    """
    if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for admin operations"
        )

    logger.info(f"Initializing Supabase admin client: url={SUPABASE_URL}")
    return create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)


def delete_identity(user_id: str) -> None:
    """
    Delete a user from the identity provider.

    Args:
        user_id: Identity provider user id

    Raises:
        UpstreamFailureError: If the provider rejects or fails the deletion
    """
    try:
        get_supabase_admin_client().auth.admin.delete_user(user_id)
    except Exception as e:
        logger.error(f"Identity provider failed to delete user_id={user_id}: {e}")
        raise UpstreamFailureError(f"Failed to delete user: {e}") from e

    logger.info(f"Identity deleted: user_id={user_id}")
