"""
Sync User Functions Script
Normalizes the function_id and custom_permissions stored on users rows
against permissions_config. Can be run manually or as part of a nightly job.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from guardiao.config.permissions_config import USER_FUNCTIONS, DEFAULT_FUNCTION, unknown_permissions
from guardiao.database.supabase_client import get_supabase_admin
from supabase import Client
from typing import Optional
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def normalized_changes(user: dict) -> Optional[dict]:
    """Fields to rewrite on a users row, or None when it is already consistent"""
    changes = {}
    function_id = user.get("function_id")
    if function_id and function_id not in USER_FUNCTIONS:
        changes["function_id"] = DEFAULT_FUNCTION

    custom = user.get("custom_permissions") or []
    unknown = set(unknown_permissions(custom))
    if unknown:
        changes["custom_permissions"] = [p for p in custom if p not in unknown]
    return changes or None


def sync_user_functions(supabase: Client) -> int:
    logger.info("Syncing user functions...")

    users = supabase.table("users")\
        .select("id, saram, function_id, custom_permissions")\
        .execute()

    updated_count = 0
    for user in users.data or []:
        changes = normalized_changes(user)
        if not changes:
            continue
        try:
            supabase.table("users")\
                .update(changes)\
                .eq("id", user["id"])\
                .execute()
            updated_count += 1
            logger.debug(f"Normalized user {user.get('saram')}: {changes}")
        except Exception as e:
            logger.error(f"Error normalizing user {user.get('saram')}: {e}")

    logger.info(f"User functions synced: {updated_count} updated")
    return updated_count


def main():
    try:
        sync_user_functions(get_supabase_admin())
        logger.info("Sync completed successfully!")
    except Exception as e:
        logger.error(f"Error during sync: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
