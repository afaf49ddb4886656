"""initial back office schema

Revision ID: 0001_backoffice
Revises:
Create Date: 2024-05-01 00:00:00.000000

Creates the complete back office schema:
- roles / permissions / employees / session_tokens: staff and access
- categories / items / stock_lots / stock_operations / stock_movements: catalog and stock ledger
- members / member_point_logs: loyalty point ledger
- coupons / sales / sale_items / sale_card_payments / sale_coupons: sales orders
- employee_salaries / commission_logs: commission ledger and salary runs
- code_sequences / notifications: code allocation and notification outbox
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_backoffice'
down_revision = None
branch_labels = None
depends_on = None


def _created_at(index=False):
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'), index=index)


def _updated_at():
    return sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # Staff and access
    # ============================================================================
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('basic_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('commission_percentage', sa.Numeric(6, 4), nullable=False),
        _created_at(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_permissions_code', 'permissions', ['code'], unique=True)
    op.create_index('ix_permissions_category', 'permissions', ['category'])

    op.create_table(
        'role_permissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('permission_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ),
        sa.ForeignKeyConstraint(['permission_id'], ['permissions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('role_id', 'permission_id', name='uq_role_permission'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_role_permissions_role_id', 'role_permissions', ['role_id'])
    op.create_index('ix_role_permissions_permission_id', 'role_permissions', ['permission_id'])

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('phone_no', sa.String(length=32), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _created_at(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('code'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_employees_username', 'employees', ['username'], unique=True)
    op.create_index('ix_employees_role_id', 'employees', ['role_id'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        _created_at(),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_employee_id', 'session_tokens', ['employee_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)

    # ============================================================================
    # Catalog and stock ledger
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _created_at(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(14, 2), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['updated_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_items_name', 'items', ['name'])
    op.create_index('ix_items_category_id', 'items', ['category_id'])

    # qty never goes negative; every change is explained by stock_movements
    op.create_table(
        'stock_lots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('cogs', sa.Numeric(14, 2), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('qty >= 0', name='ck_stock_lots_qty_non_negative'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_lots_item_id', 'stock_lots', ['item_id'])
    op.create_index('ix_stock_lots_item_qty', 'stock_lots', ['item_id', 'qty'])

    op.create_table(
        'stock_operations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_operations_item_id', 'stock_operations', ['item_id'])

    # ============================================================================
    # Members and coupons
    # ============================================================================
    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone_no', sa.String(length=32), nullable=True),
        sa.Column('point', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['updated_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('code'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'coupons',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('value', sa.Numeric(14, 2), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['updated_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('code'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # Sales orders
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='hold'),
        sa.Column('member_id', sa.Integer(), nullable=True),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('coupon_id', sa.Integer(), nullable=True),
        sa.Column('discount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('tax', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('sub_total', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['coupon_id'], ['coupons.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['updated_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('code'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_status', 'sales', ['status'])
    op.create_index('ix_sales_member_id', 'sales', ['member_id'])
    op.create_index('ix_sales_employee_id', 'sales', ['employee_id'])
    op.create_index('ix_sales_coupon_id', 'sales', ['coupon_id'])
    op.create_index('ix_sales_status_created', 'sales', ['status', 'created_at'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(14, 2), nullable=False),
        sa.Column('sub_total', sa.Numeric(14, 2), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint('qty > 0', name='ck_sale_items_qty_positive'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['updated_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('sale_id', 'item_id', name='uq_sale_items_sale_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_item_id', 'sale_items', ['item_id'])

    # Append-only; sale_item_id is a plain reference that survives line removal
    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('stock_lot_id', sa.Integer(), nullable=False),
        sa.Column('direction', sa.String(length=8), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('source_kind', sa.String(length=16), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('sale_item_id', sa.Integer(), nullable=True),
        sa.Column('stock_operation_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['stock_lot_id'], ['stock_lots.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['stock_operation_id'], ['stock_operations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_movements_stock_lot_id', 'stock_movements', ['stock_lot_id'])
    op.create_index('ix_stock_movements_source_kind', 'stock_movements', ['source_kind'])
    op.create_index('ix_stock_movements_sale_id', 'stock_movements', ['sale_id'])
    op.create_index('ix_stock_movements_sale_item_id', 'stock_movements', ['sale_item_id'])
    op.create_index('ix_stock_movements_stock_operation_id', 'stock_movements', ['stock_operation_id'])
    op.create_index('ix_stock_movements_lot_created', 'stock_movements', ['stock_lot_id', 'created_at'])

    op.create_table(
        'sale_card_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('card_no', sa.String(length=32), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_card_payments_sale_id', 'sale_card_payments', ['sale_id'])

    op.create_table(
        'sale_coupons',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('coupon_id', sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['coupon_id'], ['coupons.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', 'coupon_id', name='uq_sale_coupons_sale_coupon'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_coupons_sale_id', 'sale_coupons', ['sale_id'])
    op.create_index('ix_sale_coupons_coupon_id', 'sale_coupons', ['coupon_id'])

    # ============================================================================
    # Commission and point ledgers
    # ============================================================================
    op.create_table(
        'employee_salaries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('period', sa.String(length=7), nullable=False),
        sa.Column('basic_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('sales_commission', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('employee_id', 'period', name='uq_employee_salaries_employee_period'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_employee_salaries_employee_id', 'employee_salaries', ['employee_id'])
    op.create_index('ix_employee_salaries_period', 'employee_salaries', ['period'])

    op.create_table(
        'commission_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.Integer(), nullable=False),
        sa.Column('value', sa.Numeric(14, 2), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('source_kind', sa.String(length=16), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('salary_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _created_at(index=True),
        sa.CheckConstraint('value > 0', name='ck_commission_logs_value_positive'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['salary_id'], ['employee_salaries.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_commission_logs_employee_id', 'commission_logs', ['employee_id'])
    op.create_index('ix_commission_logs_sale_id', 'commission_logs', ['sale_id'])
    op.create_index('ix_commission_logs_salary_id', 'commission_logs', ['salary_id'])
    op.create_index('ix_commission_logs_employee_created', 'commission_logs', ['employee_id', 'created_at'])

    op.create_table(
        'member_point_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.Integer(), nullable=False),
        sa.Column('point', sa.Numeric(14, 2), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        _created_at(index=True),
        sa.CheckConstraint('point > 0', name='ck_member_point_logs_point_positive'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['created_by'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_member_point_logs_member_id', 'member_point_logs', ['member_id'])
    op.create_index('ix_member_point_logs_sale_id', 'member_point_logs', ['sale_id'])
    op.create_index('ix_member_point_logs_member_created', 'member_point_logs', ['member_id', 'created_at'])

    # ============================================================================
    # Code allocation and notification outbox
    # ============================================================================
    op.create_table(
        'code_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tag', sa.String(length=16), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tag', 'year', name='uq_code_sequences_tag_year'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recipient_kind', sa.String(length=16), nullable=False),
        sa.Column('recipient_id', sa.Integer(), nullable=False),
        sa.Column('event', sa.String(length=64), nullable=False),
        sa.Column('payload', sa.Text(), nullable=True),
        _created_at(),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_notifications_event', 'notifications', ['event'])
    op.create_index('ix_notifications_recipient', 'notifications', ['recipient_kind', 'recipient_id'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('notifications')
    op.drop_table('code_sequences')
    op.drop_table('member_point_logs')
    op.drop_table('commission_logs')
    op.drop_table('employee_salaries')
    op.drop_table('sale_coupons')
    op.drop_table('sale_card_payments')
    op.drop_table('stock_movements')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('coupons')
    op.drop_table('members')
    op.drop_table('stock_operations')
    op.drop_table('stock_lots')
    op.drop_table('items')
    op.drop_table('categories')
    op.drop_table('session_tokens')
    op.drop_table('employees')
    op.drop_table('role_permissions')
    op.drop_table('permissions')
    op.drop_table('roles')
