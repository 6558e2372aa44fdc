"""Workflow schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19

Creates: users, orders, request_quotes, quote_responses, work_item_transitions, event_outbox
Status columns are VARCHAR with CHECK constraints so new statuses need no type migration.
"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')
    op.execute('CREATE EXTENSION IF NOT EXISTS "pg_trgm";')

    # ── 1. Users (profile mirror of the identity provider) ────────────────
    op.execute("""
        CREATE TABLE users (
            id VARCHAR(64) PRIMARY KEY,
            email VARCHAR(255) NOT NULL,
            first_name VARCHAR(100),
            last_name VARCHAR(100),
            image_url VARCHAR(2048),
            role VARCHAR(32) NOT NULL DEFAULT 'customer'
                CHECK (role IN ('admin', 'shipper', 'designer', 'customer')),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX ix_users_email ON users (email);")
    op.execute("CREATE INDEX ix_users_role ON users (role);")

    # ── 2. Orders ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE orders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id VARCHAR(64) NOT NULL,
            shipper_id VARCHAR(64),
            status VARCHAR(32) NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'processing', 'shipping',
                                  'shipped', 'delivered', 'canceled')),
            items JSONB NOT NULL DEFAULT '[]',
            shipping_details JSONB NOT NULL DEFAULT '{}',
            total_amount NUMERIC(12, 2) NOT NULL CHECK (total_amount >= 0),
            payment_method VARCHAR(50) NOT NULL,
            payment_intent_id VARCHAR(255) UNIQUE,
            notes TEXT,
            admin_notes TEXT,
            shipping_image VARCHAR(2048),
            search_text TEXT NOT NULL DEFAULT '',
            processing_at TIMESTAMPTZ,
            shipping_at TIMESTAMPTZ,
            shipped_at TIMESTAMPTZ,
            delivered_at TIMESTAMPTZ,
            canceled_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("CREATE INDEX ix_orders_user_id ON orders (user_id);")
    op.execute("CREATE INDEX ix_orders_shipper_id ON orders (shipper_id);")
    op.execute("CREATE INDEX ix_orders_status_created_at ON orders (status, created_at);")
    # Shipper pool: unclaimed orders ready to ship
    op.execute("""
        CREATE INDEX ix_orders_unclaimed_shipping ON orders (created_at)
        WHERE status = 'shipping' AND shipper_id IS NULL;
    """)
    op.execute("""
        CREATE INDEX ix_orders_search_text_trgm ON orders
        USING gin (search_text gin_trgm_ops);
    """)

    # ── 3. Request quotes ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE request_quotes (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id VARCHAR(64) NOT NULL,
            designer_id VARCHAR(64),
            design_id UUID,
            status VARCHAR(32) NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'reviewing', 'quoted',
                                  'approved', 'rejected', 'completed')),
            first_name VARCHAR(100) NOT NULL,
            last_name VARCHAR(100) NOT NULL,
            email_address VARCHAR(255) NOT NULL,
            phone VARCHAR(50) NOT NULL,
            company VARCHAR(255),
            street_address VARCHAR(255) NOT NULL,
            suburb_city VARCHAR(100) NOT NULL,
            state VARCHAR(100) NOT NULL,
            country VARCHAR(100) NOT NULL,
            postcode VARCHAR(20) NOT NULL,
            agree_terms BOOLEAN NOT NULL DEFAULT FALSE,
            type VARCHAR(32) NOT NULL CHECK (type IN ('product', 'custom')),
            product_details JSONB,
            custom_need TEXT,
            need_delivery_by TIMESTAMPTZ,
            extra_information TEXT,
            quoted_price NUMERIC(12, 2) CHECK (quoted_price >= 0),
            price_breakdown JSONB,
            rejection_reason TEXT,
            admin_notes TEXT,
            notes TEXT,
            current_version INTEGER NOT NULL DEFAULT 0,
            total_revisions INTEGER NOT NULL DEFAULT 0,
            reviewing_at TIMESTAMPTZ,
            quoted_at TIMESTAMPTZ,
            approved_at TIMESTAMPTZ,
            rejected_at TIMESTAMPTZ,
            completed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_request_quotes_payload CHECK (
                (type = 'product' AND product_details IS NOT NULL)
                OR (type = 'custom' AND custom_need IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX ix_request_quotes_user_id ON request_quotes (user_id);")
    op.execute("CREATE INDEX ix_request_quotes_designer_id ON request_quotes (designer_id);")
    op.execute("CREATE INDEX ix_request_quotes_email_address ON request_quotes (email_address);")
    op.execute(
        "CREATE INDEX ix_request_quotes_status_created_at ON request_quotes (status, created_at);"
    )
    op.execute("""
        CREATE INDEX ix_request_quotes_name_trgm ON request_quotes
        USING gin ((first_name || ' ' || last_name) gin_trgm_ops);
    """)

    # ── 4. Quote response versions ────────────────────────────────────────
    op.execute("""
        CREATE TABLE quote_responses (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            request_quote_id UUID NOT NULL REFERENCES request_quotes(id) ON DELETE CASCADE,
            version INTEGER NOT NULL CHECK (version >= 1),
            status VARCHAR(32) NOT NULL,
            quoted_price NUMERIC(12, 2),
            price_breakdown JSONB,
            production_details JSONB,
            response_message TEXT,
            rejection_reason TEXT,
            admin_notes TEXT,
            responded_by VARCHAR(64) NOT NULL,
            responded_at TIMESTAMPTZ NOT NULL,
            valid_until TIMESTAMPTZ,
            is_current_version BOOLEAN NOT NULL DEFAULT TRUE,
            revision_reason VARCHAR(32)
                CHECK (revision_reason IN ('customer_request', 'admin_improvement',
                                           'cost_change', 'timeline_change',
                                           'material_change')),
            customer_feedback JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX ix_quote_responses_request_quote_id ON quote_responses (request_quote_id);"
    )
    op.execute("""
        CREATE UNIQUE INDEX uq_quote_responses_quote_version
        ON quote_responses (request_quote_id, version);
    """)
    # At most one current version per quote
    op.execute("""
        CREATE UNIQUE INDEX uq_quote_responses_current ON quote_responses (request_quote_id)
        WHERE is_current_version;
    """)

    # ── 5. Workflow audit trail ───────────────────────────────────────────
    op.execute("""
        CREATE TABLE work_item_transitions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            item_type VARCHAR(32) NOT NULL CHECK (item_type IN ('order', 'request_quote')),
            item_id UUID NOT NULL,
            sequence INTEGER NOT NULL,
            action VARCHAR(32) NOT NULL,
            from_status VARCHAR(32) NOT NULL,
            to_status VARCHAR(32) NOT NULL,
            actor_id VARCHAR(64) NOT NULL,
            actor_role VARCHAR(32) NOT NULL,
            reason TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_work_item_transitions_item_sequence
        ON work_item_transitions (item_type, item_id, sequence);
    """)

    # ── 6. Transactional outbox ───────────────────────────────────────────
    op.execute("""
        CREATE TABLE event_outbox (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_type VARCHAR(255) NOT NULL,
            aggregate_type VARCHAR(255) NOT NULL,
            aggregate_id VARCHAR(255) NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}',
            schema_version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );
    """)
    op.execute(
        "CREATE INDEX ix_event_outbox_aggregate ON event_outbox (aggregate_type, aggregate_id);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS event_outbox;")
    op.execute("DROP TABLE IF EXISTS work_item_transitions;")
    op.execute("DROP TABLE IF EXISTS quote_responses;")
    op.execute("DROP TABLE IF EXISTS request_quotes;")
    op.execute("DROP TABLE IF EXISTS orders;")
    op.execute("DROP TABLE IF EXISTS users;")
