"""
Provision an administrator for the admin API.

Creating the account itself happens in the identity provider, out of band;
this script only prints those steps. Run with `--apply <user-id>` once the
account exists to insert the matching admin group membership.

    python create_admin_user.py --email admin@example.com
    python create_admin_user.py --apply 1a2b3c4d-sub-from-the-provider
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone

import asyncpg

from gateway.core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("create_admin_user")

PROVIDER_STEPS = """\
1. Create the user in the identity provider (Cognito example):

   aws cognito-idp admin-create-user \\
     --user-pool-id YOUR_USER_POOL_ID \\
     --username {email} \\
     --user-attributes Name=email,Value={email} \\
     --message-action SUPPRESS

2. Do not rely on a provider-side '{group}' group: the gateway ignores
   that claim at sign-in. Admin rights come only from user_groups.

3. Look up the user's stable id (the `sub` attribute) and run:

   python create_admin_user.py --apply <sub>
"""


async def grant_admin(user_id: str) -> bool:
    conn = None
    try:
        conn = await asyncpg.connect(settings.DATABASE_URL)
        await conn.execute(
            """
            INSERT INTO user_groups (user_id, group_name, assigned_at, source)
            VALUES ($1, $2, $3, 'admin')
            ON CONFLICT (user_id, group_name) DO UPDATE SET source = 'admin'
            """,
            user_id,
            settings.ADMIN_GROUP,
            datetime.now(timezone.utc),
        )
        logger.info("User %s is in group %r.", user_id, settings.ADMIN_GROUP)
        return True
    except (asyncpg.PostgresError, OSError) as e:
        logger.error("Database error: %s", e)
        return False
    finally:
        if conn is not None:
            await conn.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument("--email", default="admin@example.com")
    parser.add_argument("--apply", metavar="USER_ID", help="insert the admin membership for this user id")
    args = parser.parse_args(argv)

    if not args.apply:
        print(PROVIDER_STEPS.format(email=args.email, group=settings.ADMIN_GROUP))
        return 0

    return 0 if asyncio.run(grant_admin(args.apply)) else 1


if __name__ == "__main__":
    sys.exit(main())
