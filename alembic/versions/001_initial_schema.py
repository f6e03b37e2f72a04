"""Initial CRM schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates tenants, sellers, stages, leads, lead_comments and tasks.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    tenant_status_enum = sa.Enum('ACTIVE', 'TRIAL', 'SUSPENDED', 'CANCELLED', name='tenantstatus')
    seller_role_enum = sa.Enum('ADMIN', 'ROP', 'SELLER', name='sellerrole')
    stage_category_enum = sa.Enum('NORMAL', 'WON', 'LOST', name='stagecategory')
    task_status_enum = sa.Enum('PENDING', 'COMPLETED', name='taskstatus')

    op.create_table('tenants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('config', sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql'),
                  nullable=False, server_default='{}'),
        sa.Column('api_key_hash', sa.String(), nullable=True),
        sa.Column('api_key_prefix', sa.String(), nullable=True),
        sa.Column('status', tenant_status_enum, nullable=False, server_default='ACTIVE'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tenants_slug'), 'tenants', ['slug'], unique=True)

    op.create_table('sellers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('role', seller_role_enum, nullable=False, server_default='SELLER'),
        sa.Column('telegram_chat_id', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sellers_tenant_id'), 'sellers', ['tenant_id'], unique=False)

    op.create_table('stages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('color', sa.String(), nullable=False, server_default='bg-blue-500'),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('category', stage_category_enum, nullable=False, server_default='NORMAL'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'key', name='uq_stage_tenant_key')
    )
    op.create_index(op.f('ix_stages_tenant_id'), 'stages', ['tenant_id'], unique=False)
    op.create_index('idx_stage_tenant_order', 'stages', ['tenant_id', 'display_order'], unique=False)

    op.create_table('leads',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('seller_id', sa.Uuid(), nullable=False),
        sa.Column('stage_id', sa.Uuid(), nullable=False),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('customer_phone', sa.String(), nullable=True),
        sa.Column('price', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('source', sa.String(), nullable=True),
        sa.Column('delivery_status', sa.String(), nullable=True),
        sa.Column('action_status', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['seller_id'], ['sellers.id']),
        sa.ForeignKeyConstraint(['stage_id'], ['stages.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_leads_tenant_id'), 'leads', ['tenant_id'], unique=False)
    op.create_index('idx_lead_tenant_stage', 'leads', ['tenant_id', 'stage_id'], unique=False)
    op.create_index('idx_lead_tenant_seller', 'leads', ['tenant_id', 'seller_id'], unique=False)

    op.create_table('lead_comments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('lead_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('is_system', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['sellers.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_comment_lead_created', 'lead_comments', ['lead_id', 'created_at'], unique=False)

    op.create_table('tasks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('lead_id', sa.Uuid(), nullable=True),
        sa.Column('seller_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=False),
        sa.Column('status', task_status_enum, nullable=False, server_default='PENDING'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['seller_id'], ['sellers.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tasks_tenant_id'), 'tasks', ['tenant_id'], unique=False)
    op.create_index('idx_task_status_due', 'tasks', ['status', 'due_date'], unique=False)
    op.create_index('idx_task_seller_status', 'tasks', ['seller_id', 'status'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_task_seller_status', table_name='tasks')
    op.drop_index('idx_task_status_due', table_name='tasks')
    op.drop_index(op.f('ix_tasks_tenant_id'), table_name='tasks')
    op.drop_table('tasks')

    op.drop_index('idx_comment_lead_created', table_name='lead_comments')
    op.drop_table('lead_comments')

    op.drop_index('idx_lead_tenant_seller', table_name='leads')
    op.drop_index('idx_lead_tenant_stage', table_name='leads')
    op.drop_index(op.f('ix_leads_tenant_id'), table_name='leads')
    op.drop_table('leads')

    op.drop_index('idx_stage_tenant_order', table_name='stages')
    op.drop_index(op.f('ix_stages_tenant_id'), table_name='stages')
    op.drop_table('stages')

    op.drop_index(op.f('ix_sellers_tenant_id'), table_name='sellers')
    op.drop_table('sellers')

    op.drop_index(op.f('ix_tenants_slug'), table_name='tenants')
    op.drop_table('tenants')

    op.execute('DROP TYPE IF EXISTS taskstatus')
    op.execute('DROP TYPE IF EXISTS stagecategory')
    op.execute('DROP TYPE IF EXISTS sellerrole')
    op.execute('DROP TYPE IF EXISTS tenantstatus')
