"""004: create promotions, promotion_listings, promotion_redemptions

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE promotions (
            id                  VARCHAR(64)     PRIMARY KEY,
            title               VARCHAR(200)    NOT NULL,
            description         TEXT            NOT NULL DEFAULT '',
            type                VARCHAR(32)     NOT NULL,
            value               BIGINT          NOT NULL,
            target_type         VARCHAR(32)     NOT NULL DEFAULT 'all_users',
            target_criteria     JSONB           NOT NULL DEFAULT '{}'::jsonb,
            valid_from          TIMESTAMPTZ     NOT NULL,
            valid_to            TIMESTAMPTZ     NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'draft',
            promo_code          VARCHAR(32),
            usage_limit         INTEGER,
            used_count          INTEGER         NOT NULL DEFAULT 0,
            max_usage_per_user  INTEGER         NOT NULL DEFAULT 1,
            priority            INTEGER         NOT NULL DEFAULT 0,
            created_by          UUID            REFERENCES users(id) ON DELETE SET NULL,
            last_modified_by    UUID            REFERENCES users(id) ON DELETE SET NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_promotions_promo_code UNIQUE (promo_code),
            CONSTRAINT ck_promotions_type CHECK (
                type IN ('percentage', 'fixed_amount', 'free_listing',
                         'featured_upgrade', 'bonus_credits')
            ),
            CONSTRAINT ck_promotions_target_type CHECK (
                target_type IN ('all_users', 'category', 'location',
                                'specific_users', 'user_role')
            ),
            CONSTRAINT ck_promotions_status CHECK (
                status IN ('draft', 'active', 'paused', 'expired', 'cancelled')
            ),
            CONSTRAINT ck_promotions_value CHECK (value >= 0),
            CONSTRAINT ck_promotions_percentage CHECK (type <> 'percentage' OR value <= 100),
            CONSTRAINT ck_promotions_window CHECK (valid_to > valid_from),
            CONSTRAINT ck_promotions_usage CHECK (
                used_count >= 0 AND max_usage_per_user >= 1
                AND (usage_limit IS NULL OR usage_limit >= 1)
            )
        );
    """)
    op.execute("CREATE INDEX idx_promotions_status ON promotions (status, valid_to);")
    op.execute("CREATE INDEX idx_promotions_created ON promotions (created_at DESC, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_promotions_updated_at
            BEFORE UPDATE ON promotions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    # Listings a promotion was applied to; revocation works from this list
    op.execute("""
        CREATE TABLE promotion_listings (
            promotion_id    VARCHAR(64)     NOT NULL REFERENCES promotions(id) ON DELETE CASCADE,
            listing_id      VARCHAR(64)     NOT NULL,
            applied_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            PRIMARY KEY (promotion_id, listing_id)
        );
    """)

    op.execute("""
        CREATE TABLE promotion_redemptions (
            id              BIGSERIAL       PRIMARY KEY,
            promotion_id    VARCHAR(64)     NOT NULL REFERENCES promotions(id) ON DELETE CASCADE,
            user_id         UUID            NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            redeemed_at     TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE INDEX idx_promotion_redemptions_user
            ON promotion_redemptions (promotion_id, user_id);
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS promotion_redemptions CASCADE;")
    op.execute("DROP TABLE IF EXISTS promotion_listings CASCADE;")
    op.execute("DROP TABLE IF EXISTS promotions CASCADE;")
