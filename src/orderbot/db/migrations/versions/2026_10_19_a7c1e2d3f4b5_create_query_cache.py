"""create_query_cache

PostgreSQL-native query cache shared by all bot / API instances:
1. UNLOGGED cache table for key-value caching with TTL
2. cache_get / cache_set / cache_invalidate helper functions
3. cache_cleanup for expired entries

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op

revision: str = 'a7c1e2d3f4b5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. UNLOGGED cache table ──
    # Not written to WAL; entries lost on crash are refetched on miss.
    op.execute("""
        CREATE UNLOGGED TABLE IF NOT EXISTS cache (
            key         TEXT PRIMARY KEY,
            value       JSONB NOT NULL,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
            expires_at  TIMESTAMPTZ NOT NULL
        )
    """)

    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_cache_expires_at
        ON cache (expires_at)
    """)

    # ── 2. Cleanup of expired entries ──
    op.execute("""
        CREATE OR REPLACE FUNCTION cache_cleanup()
        RETURNS INTEGER
        LANGUAGE sql
        AS $$
            WITH deleted AS (
                DELETE FROM cache
                WHERE expires_at < now()
                RETURNING 1
            )
            SELECT count(*)::integer FROM deleted;
        $$
    """)

    # ── 3. get / set / invalidate ──
    op.execute("""
        CREATE OR REPLACE FUNCTION cache_get(p_key TEXT)
        RETURNS JSONB
        LANGUAGE sql
        AS $$
            SELECT value FROM cache
            WHERE key = p_key AND expires_at > now()
            LIMIT 1;
        $$
    """)

    op.execute("""
        CREATE OR REPLACE FUNCTION cache_set(
            p_key TEXT,
            p_value JSONB,
            p_ttl_seconds INTEGER DEFAULT 300
        )
        RETURNS VOID
        LANGUAGE sql
        AS $$
            INSERT INTO cache (key, value, expires_at)
            VALUES (p_key, p_value, now() + (p_ttl_seconds || ' seconds')::interval)
            ON CONFLICT (key)
            DO UPDATE SET
                value = EXCLUDED.value,
                created_at = now(),
                expires_at = EXCLUDED.expires_at;
        $$
    """)

    # Query keys are segment-terminated ("supplier-leads:<id>:"), so a plain
    # prefix match never spills into a neighbouring id.
    op.execute("""
        CREATE OR REPLACE FUNCTION cache_invalidate(p_prefix TEXT)
        RETURNS INTEGER
        LANGUAGE sql
        AS $$
            WITH deleted AS (
                DELETE FROM cache
                WHERE left(key, length(p_prefix)) = p_prefix
                RETURNING 1
            )
            SELECT count(*)::integer FROM deleted;
        $$
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS cache_invalidate(TEXT)")
    op.execute("DROP FUNCTION IF EXISTS cache_set(TEXT, JSONB, INTEGER)")
    op.execute("DROP FUNCTION IF EXISTS cache_get(TEXT)")
    op.execute("DROP FUNCTION IF EXISTS cache_cleanup()")
    op.execute("DROP TABLE IF EXISTS cache")
