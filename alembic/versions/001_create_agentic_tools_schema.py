"""Create agentic tools schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

TENANT_TABLES = (
    "integrations",
    "reference_data",
    "agentic_tools",
    "agentic_tool_executions",
    "event_logs",
)


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.execute("""
        CREATE TABLE integrations (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tenant_id UUID NOT NULL,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            description TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE (tenant_id, slug)
        )
    """)

    op.execute("""
        CREATE TABLE actions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            integration_id UUID NOT NULL REFERENCES integrations(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            description TEXT,
            http_method TEXT NOT NULL DEFAULT 'GET',
            endpoint_template TEXT NOT NULL DEFAULT '',
            input_schema JSONB NOT NULL DEFAULT '{}'::jsonb,
            output_schema JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE (integration_id, slug)
        )
    """)

    op.execute("""
        CREATE TABLE reference_data (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tenant_id UUID NOT NULL,
            data_type TEXT NOT NULL,
            external_id TEXT NOT NULL,
            name TEXT NOT NULL,
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
            status TEXT NOT NULL DEFAULT 'active',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_reference_data_lookup ON reference_data (tenant_id, data_type, status)")

    op.execute("""
        CREATE TABLE agentic_tools (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tenant_id UUID NOT NULL,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            description TEXT,
            execution_mode TEXT NOT NULL
                CHECK (execution_mode IN ('parameter_interpreter', 'autonomous_agent')),
            embedded_llm_config JSONB NOT NULL,
            system_prompt TEXT NOT NULL,
            tool_allocation JSONB NOT NULL,
            context_config JSONB,
            safety_limits JSONB NOT NULL DEFAULT '{}'::jsonb,
            status TEXT NOT NULL DEFAULT 'draft'
                CHECK (status IN ('draft', 'active', 'disabled')),
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            UNIQUE (tenant_id, slug)
        )
    """)

    op.execute("""
        CREATE TABLE agentic_tool_executions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            agentic_tool_id UUID NOT NULL REFERENCES agentic_tools(id) ON DELETE CASCADE,
            tenant_id UUID NOT NULL,
            parent_request JSONB NOT NULL,
            llm_calls JSONB NOT NULL DEFAULT '[]'::jsonb,
            tool_calls JSONB NOT NULL DEFAULT '[]'::jsonb,
            result JSONB,
            status TEXT NOT NULL CHECK (status IN ('success', 'error', 'timeout')),
            error JSONB,
            total_cost DECIMAL(10, 6) NOT NULL DEFAULT 0,
            total_tokens INTEGER NOT NULL DEFAULT 0,
            duration_ms INTEGER NOT NULL DEFAULT 0,
            trace_id TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            completed_at TIMESTAMPTZ
        )
    """)
    op.execute(
        "CREATE INDEX idx_agentic_tool_executions_tool ON agentic_tool_executions (agentic_tool_id, created_at DESC)"
    )

    op.execute("""
        CREATE TABLE event_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tenant_id UUID NOT NULL,
            agentic_tool_id UUID,
            request_id TEXT,
            event_type TEXT NOT NULL,
            provider TEXT,
            status TEXT NOT NULL DEFAULT 'success',
            latency_ms INTEGER,
            cost DECIMAL(10, 6),
            payload JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_event_logs_request ON event_logs (tenant_id, request_id)")

    # Row level security keyed on app.current_tenant_id, set per session
    for table in TENANT_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(f"""
            CREATE POLICY {table}_tenant_isolation ON {table}
                USING (tenant_id = current_setting('app.current_tenant_id', true)::uuid)
        """)


def downgrade() -> None:
    for table in reversed(TENANT_TABLES):
        op.execute(f"DROP POLICY IF EXISTS {table}_tenant_isolation ON {table}")
    op.execute("DROP TABLE IF EXISTS event_logs CASCADE")
    op.execute("DROP TABLE IF EXISTS agentic_tool_executions CASCADE")
    op.execute("DROP TABLE IF EXISTS agentic_tools CASCADE")
    op.execute("DROP TABLE IF EXISTS reference_data CASCADE")
    op.execute("DROP TABLE IF EXISTS actions CASCADE")
    op.execute("DROP TABLE IF EXISTS integrations CASCADE")
