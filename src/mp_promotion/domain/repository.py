"""Repository Protocols for mp_promotion.

Unit tests inject mocks conforming to these; the infrastructure layer
provides the SQL implementations.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import PromotionStatus
from src.mp_promotion.domain.models import Promotion


class PromotionRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, promotion: Promotion) -> Promotion: ...

    async def get_by_id(
        self, db: AsyncSession, promotion_id: str, for_update: bool = False
    ) -> Promotion | None: ...

    async def get_by_code(
        self, db: AsyncSession, code: str, for_update: bool = False
    ) -> Promotion | None: ...

    async def code_exists(
        self, db: AsyncSession, code: str, exclude_id: str | None = None
    ) -> bool: ...

    async def list_promotions(
        self,
        db: AsyncSession,
        status: str | None,
        search: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Promotion]: ...

    async def update(self, db: AsyncSession, promotion: Promotion) -> Promotion:
        """Whole-row write of the editable fields; bumps updated_at."""
        ...

    async def delete(self, db: AsyncSession, promotion_id: str) -> bool: ...

    async def set_status(
        self,
        db: AsyncSession,
        promotion_id: str,
        status: PromotionStatus,
        modified_by: str | None,
    ) -> None: ...

    async def list_due_for_expiry(
        self, db: AsyncSession, now: datetime
    ) -> list[Promotion]: ...

    # --- listings a promotion was applied to (for revocation) ---

    async def replace_applied_listings(
        self, db: AsyncSession, promotion_id: str, listing_ids: list[str]
    ) -> None: ...

    async def get_applied_listing_ids(
        self, db: AsyncSession, promotion_id: str
    ) -> list[str]: ...

    async def clear_applied_listings(
        self, db: AsyncSession, promotion_id: str
    ) -> None: ...

    # --- promo code redemptions ---

    async def count_user_redemptions(
        self, db: AsyncSession, promotion_id: str, user_id: str
    ) -> int: ...

    async def record_redemption(
        self, db: AsyncSession, promotion_id: str, user_id: str
    ) -> int:
        """Insert a redemption row and increment used_count. Returns the new count."""
        ...


class UserDirectoryProtocol(Protocol):
    async def find_user_ids_by_role(
        self, db: AsyncSession, roles: tuple[str, ...]
    ) -> frozenset[str]: ...
