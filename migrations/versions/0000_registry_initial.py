"""Initial registry schema

Revision ID: 0000_registry_initial
Revises:
Create Date: 2026-10-17

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0000_registry_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'schools',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('domain', sa.String(length=16), nullable=False),
        sa.Column('school', sa.String(length=200), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('plan', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_schools_domain', 'schools', ['domain'], unique=True)

    op.create_table(
        'subdomains',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('school_id', sa.Integer(), sa.ForeignKey('schools.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subdomain', sa.String(length=63), nullable=False),
        sa.Column('type', sa.String(length=40), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('access_link', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('school_id', 'subdomain', name='uq_subdomains_school_subdomain'),
    )
    op.create_index('ix_subdomains_school_id', 'subdomains', ['school_id'], unique=False)


def downgrade():
    op.drop_index('ix_subdomains_school_id', table_name='subdomains')
    op.drop_table('subdomains')
    op.drop_index('ix_schools_domain', table_name='schools')
    op.drop_table('schools')
