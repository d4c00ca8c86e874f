"""005: seed demo sellers and listings

Revision ID: 005
Revises: 004
Create Date: 2026-10-18

Demo sellers cannot log in ('!' is not a bcrypt hash); they only own the
sample listings used by the admin panel and the smoke script.
"""

from typing import Sequence, Union

from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        INSERT INTO users (id, username, email, password_hash, role, location, is_active)
        VALUES
            ('00000000-0000-0000-0000-00000000d001', 'demo_dealer_waw',
             'dealer.waw@demo.invalid', '!', 'dealer', 'Warszawa', TRUE),
            ('00000000-0000-0000-0000-00000000d002', 'demo_private_krk',
             'private.krk@demo.invalid', '!', 'user', 'Kraków', TRUE),
            ('00000000-0000-0000-0000-00000000d003', 'demo_premium_gda',
             'premium.gda@demo.invalid', '!', 'premium', 'Gdańsk', TRUE);
    """)

    op.execute("""
        INSERT INTO listings (id, user_id, title, category, location, status, price)
        VALUES
            ('LST-DEMO-001', '00000000-0000-0000-0000-00000000d001',
             'Toyota RAV4 2.5 Hybrid 2019', 'SUV', 'Warszawa', 'active', 25000),
            ('LST-DEMO-002', '00000000-0000-0000-0000-00000000d001',
             'Kia Sportage 1.6 T-GDI 2021', 'SUV', 'Warszawa', 'active', 40000),
            ('LST-DEMO-003', '00000000-0000-0000-0000-00000000d002',
             'Skoda Octavia 2.0 TDI 2017', 'Sedan', 'Kraków', 'active', 15000),
            ('LST-DEMO-004', '00000000-0000-0000-0000-00000000d002',
             'Volkswagen Golf VII 1.4 TSI 2015', 'Hatchback', 'Kraków', 'active', 8000),
            ('LST-DEMO-005', '00000000-0000-0000-0000-00000000d003',
             'BMW X5 xDrive30d 2020', 'SUV', 'Gdańsk', 'active', 60000),
            ('LST-DEMO-006', '00000000-0000-0000-0000-00000000d003',
             'Audi A4 Avant 2.0 TDI 2018', 'Kombi', 'Gdańsk', 'pending', 20000);
    """)


def downgrade() -> None:
    op.execute("DELETE FROM listings WHERE id LIKE 'LST-DEMO-%';")
    op.execute("""
        DELETE FROM users WHERE id IN (
            '00000000-0000-0000-0000-00000000d001',
            '00000000-0000-0000-0000-00000000d002',
            '00000000-0000-0000-0000-00000000d003'
        );
    """)
