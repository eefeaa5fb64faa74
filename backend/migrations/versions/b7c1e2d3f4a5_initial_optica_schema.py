"""initial optica schema

Revision ID: b7c1e2d3f4a5
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete shop schema from scratch:
- users, session_tokens: staff accounts and bearer sessions
- customers, prescriptions: client records and their eye prescriptions
- products: catalog with on-hand stock counter
- appointments: scheduled visits
- sales, sale_lines: sale headers and their priced lines
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1e2d3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users / session_tokens
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=False)

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'], unique=False)
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'], unique=False)
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'], unique=False)
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'], unique=False)

    # ============================================================================
    # customers / prescriptions
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('cpf', sa.String(length=14), nullable=True),
        sa.Column('rg', sa.String(length=32), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=128), nullable=True),
        sa.Column('state', sa.String(length=64), nullable=True),
        sa.Column('postal_code', sa.String(length=16), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_customers_email'),
        sa.UniqueConstraint('cpf', name='uq_customers_cpf'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_name', 'customers', ['name'], unique=False)

    op.create_table(
        'prescriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('prescription_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('sphere_od', sa.Float(), nullable=True),
        sa.Column('cylinder_od', sa.Float(), nullable=True),
        sa.Column('axis_od', sa.Integer(), nullable=True),
        sa.Column('addition_od', sa.Float(), nullable=True),
        sa.Column('sphere_os', sa.Float(), nullable=True),
        sa.Column('cylinder_os', sa.Float(), nullable=True),
        sa.Column('axis_os', sa.Integer(), nullable=True),
        sa.Column('addition_os', sa.Float(), nullable=True),
        sa.Column('pupillary_distance', sa.Float(), nullable=True),
        sa.Column('near_pupillary_distance', sa.Float(), nullable=True),
        sa.Column('lens_height', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_prescriptions_customer_id', 'prescriptions', ['customer_id'], unique=False)
    op.create_index('ix_prescriptions_customer_date', 'prescriptions', ['customer_id', 'prescription_date'], unique=False)

    # ============================================================================
    # products: catalog + stock counter (never negative)
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.Column('brand', sa.String(length=128), nullable=True),
        sa.Column('model', sa.String(length=128), nullable=True),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('supplier', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('stock_quantity', sa.Integer(), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=True),
        sa.Column('sale_price_cents', sa.Integer(), nullable=True),
        sa.Column('lens_type', sa.String(length=32), nullable=True),
        sa.Column('lens_material', sa.String(length=32), nullable=True),
        sa.Column('lens_treatments', sa.JSON(), nullable=True),
        sa.Column('sphere_od', sa.Float(), nullable=True),
        sa.Column('cylinder_od', sa.Float(), nullable=True),
        sa.Column('axis_od', sa.Integer(), nullable=True),
        sa.Column('addition_od', sa.Float(), nullable=True),
        sa.Column('sphere_os', sa.Float(), nullable=True),
        sa.Column('cylinder_os', sa.Float(), nullable=True),
        sa.Column('axis_os', sa.Integer(), nullable=True),
        sa.Column('addition_os', sa.Float(), nullable=True),
        sa.Column('lens_manufacturer', sa.String(length=128), nullable=True),
        sa.Column('contact_base_curve', sa.String(length=32), nullable=True),
        sa.Column('contact_diameter', sa.Float(), nullable=True),
        sa.Column('contact_power', sa.Float(), nullable=True),
        sa.Column('contact_replacement', sa.String(length=32), nullable=True),
        sa.Column('contact_solutions', sa.String(length=255), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku', name='uq_products_sku'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_name', 'products', ['name'], unique=False)
    op.create_index('ix_products_category', 'products', ['category'], unique=False)

    # ============================================================================
    # appointments
    # ============================================================================
    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('appointment_date', sa.Date(), nullable=False),
        sa.Column('appointment_time', sa.String(length=5), nullable=False),
        sa.Column('appointment_type', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_appointments_customer_id', 'appointments', ['customer_id'], unique=False)
    op.create_index('ix_appointments_date', 'appointments', ['appointment_date'], unique=False)
    op.create_index('ix_appointments_status', 'appointments', ['status'], unique=False)

    # ============================================================================
    # sales / sale_lines
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.CheckConstraint('total_cents >= 0', name='ck_sales_total_non_negative'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_customer_id', 'sales', ['customer_id'], unique=False)
    op.create_index('ix_sales_payment_status', 'sales', ['payment_status'], unique=False)
    op.create_index('ix_sales_created_at', 'sales', ['created_at'], unique=False)
    op.create_index('ix_sales_customer_created', 'sales', ['customer_id', 'created_at'], unique=False)

    op.create_table(
        'sale_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_sale_lines_quantity_positive'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', 'product_id', name='uq_sale_lines_sale_product'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_lines_sale_id', 'sale_lines', ['sale_id'], unique=False)
    op.create_index('ix_sale_lines_product_id', 'sale_lines', ['product_id'], unique=False)


def downgrade():
    op.drop_table('sale_lines')
    op.drop_table('sales')
    op.drop_table('appointments')
    op.drop_table('products')
    op.drop_table('prescriptions')
    op.drop_table('customers')
    op.drop_table('session_tokens')
    op.drop_table('users')
