"""UserDirectory: role -> user id lookup for user_role targeting."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_USER_IDS_BY_ROLE_SQL = text("""
    SELECT id
    FROM users
    WHERE role = ANY(CAST(:roles AS TEXT[]))
""")


class UserDirectory:
    async def find_user_ids_by_role(
        self, db: AsyncSession, roles: tuple[str, ...]
    ) -> frozenset[str]:
        if not roles:
            return frozenset()
        result = await db.execute(_USER_IDS_BY_ROLE_SQL, {"roles": sorted(set(roles))})
        return frozenset(str(row.id) for row in result.fetchall())
