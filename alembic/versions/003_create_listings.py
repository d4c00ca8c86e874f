"""003: create listings table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18

Prices are whole PLN. The discount columns are written together:
discount_kind, discount_value and discounted_price are either all NULL or
all set, with 0 <= discounted_price <= price.
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listings (
            id                  VARCHAR(64)     PRIMARY KEY,
            user_id             UUID            NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            title               VARCHAR(200)    NOT NULL,
            category            VARCHAR(64)     NOT NULL,
            location            VARCHAR(64),
            status              VARCHAR(16)     NOT NULL DEFAULT 'pending',
            price               BIGINT          NOT NULL,
            discount_kind       VARCHAR(16),
            discount_value      BIGINT,
            discounted_price    BIGINT,
            version             BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_price CHECK (price >= 0),
            CONSTRAINT ck_listings_status CHECK (
                status IN ('pending', 'approved', 'rejected', 'active', 'hidden')
            ),
            CONSTRAINT ck_listings_discount_kind CHECK (
                discount_kind IS NULL OR discount_kind IN ('percentage', 'fixed')
            ),
            CONSTRAINT ck_listings_discount_together CHECK (
                (discount_kind IS NULL AND discount_value IS NULL AND discounted_price IS NULL)
                OR (discount_kind IS NOT NULL AND discount_value IS NOT NULL
                    AND discounted_price IS NOT NULL)
            ),
            CONSTRAINT ck_listings_discounted_price CHECK (
                discounted_price IS NULL OR (discounted_price >= 0 AND discounted_price <= price)
            )
        );
    """)
    op.execute("CREATE INDEX idx_listings_user_id ON listings (user_id);")
    op.execute("CREATE INDEX idx_listings_category ON listings (category);")
    op.execute("CREATE INDEX idx_listings_location ON listings (location);")
    op.execute("CREATE INDEX idx_listings_price ON listings (price);")
    op.execute("""
        CREATE INDEX idx_listings_discounted ON listings (created_at DESC, id DESC)
            WHERE discount_kind IS NOT NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_listings_updated_at
            BEFORE UPDATE ON listings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE listings IS 'Vehicle listings; version is bumped by every discount write';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
