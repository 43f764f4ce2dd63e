"""staffing_schema

Revision ID: 001_staffing
Revises:
Create Date: 2026-10-17

Creates the record store read by the analytics engine:
- facilities, facility_settings (budget, alert threshold, horizon, advisories,
  preferred personnel)
- personnel
- duties (posted shifts) and applications
- earnings (payouts per completed duty)

All DDL checks information_schema first so the migration is idempotent and
safe to run after Base.metadata.create_all() already created the tables.
"""
import logging
from alembic import op
import sqlalchemy as sa
from sqlalchemy import text
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = '001_staffing'
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger("alembic.001")


def _table_exists(conn, table_name: str) -> bool:
    result = conn.execute(
        text(
            "SELECT EXISTS("
            "  SELECT 1 FROM information_schema.tables"
            "  WHERE table_name = :tname"
            ")"
        ),
        {"tname": table_name},
    )
    return bool(result.scalar())


def _id_column():
    return sa.Column('id', UUID(as_uuid=False), primary_key=True)


def upgrade() -> None:
    conn = op.get_bind()

    # ── facilities ────────────────────────────────────────────────────────────
    if not _table_exists(conn, 'facilities'):
        op.create_table(
            'facilities',
            _id_column(),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('city', sa.String(120), nullable=True),
            sa.Column('is_active', sa.Boolean, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        logger.info("Created table: facilities")
    else:
        logger.info("Table facilities already exists, skipping create")

    # ── facility_settings ─────────────────────────────────────────────────────
    if not _table_exists(conn, 'facility_settings'):
        op.create_table(
            'facility_settings',
            sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
            sa.Column('facility_id', UUID(as_uuid=False), sa.ForeignKey('facilities.id'), nullable=False, unique=True),
            sa.Column('monthly_budget', sa.Numeric(14, 2), nullable=False, server_default='0'),
            sa.Column('alert_threshold', sa.Numeric(5, 4), nullable=False, server_default='0.8'),
            sa.Column('forecast_horizon_days', sa.Integer, nullable=False, server_default='14'),
            sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
            sa.Column('top_performers_limit', sa.Integer, nullable=False, server_default='5'),
            sa.Column('advisories_enabled', JSONB, nullable=True),
            sa.Column('preferred_personnel', JSONB, nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        logger.info("Created table: facility_settings")
    else:
        logger.info("Table facility_settings already exists, skipping create")

    # ── personnel ─────────────────────────────────────────────────────────────
    if not _table_exists(conn, 'personnel'):
        op.create_table(
            'personnel',
            _id_column(),
            sa.Column('full_name', sa.String(200), nullable=False),
            sa.Column('role', sa.String(50), nullable=True),
            sa.Column('specialization', sa.String(100), nullable=True),
            sa.Column('rating', sa.Numeric(3, 2), server_default='0'),
            sa.Column('experience_years', sa.Numeric(4, 1), server_default='0'),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        logger.info("Created table: personnel")
    else:
        logger.info("Table personnel already exists, skipping create")

    # ── duties ────────────────────────────────────────────────────────────────
    if not _table_exists(conn, 'duties'):
        op.create_table(
            'duties',
            _id_column(),
            sa.Column('facility_id', UUID(as_uuid=False), sa.ForeignKey('facilities.id'), nullable=False, index=True),
            sa.Column('title', sa.String(200), nullable=False, server_default=''),
            sa.Column('specialty', sa.String(100), nullable=False, server_default='General'),
            sa.Column('scheduled_start', sa.DateTime(timezone=True), nullable=False, index=True),
            sa.Column('scheduled_end', sa.DateTime(timezone=True), nullable=False),
            sa.Column('rate', sa.Numeric(10, 2), nullable=False),
            sa.Column('rate_type', sa.String(20), nullable=False, server_default='FLAT'),
            sa.Column('urgent', sa.Boolean, nullable=False, server_default=sa.false()),
            sa.Column('status', sa.String(20), nullable=False, server_default='OPEN'),
            sa.Column('assigned_personnel_id', UUID(as_uuid=False), sa.ForeignKey('personnel.id'), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        logger.info("Created table: duties")
    else:
        logger.info("Table duties already exists, skipping create")

    # ── applications ──────────────────────────────────────────────────────────
    if not _table_exists(conn, 'applications'):
        op.create_table(
            'applications',
            _id_column(),
            sa.Column('duty_id', UUID(as_uuid=False), sa.ForeignKey('duties.id'), nullable=False, index=True),
            sa.Column('personnel_id', UUID(as_uuid=False), sa.ForeignKey('personnel.id'), nullable=False, index=True),
            sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
            sa.Column('cover_letter', sa.Text, nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        )
        logger.info("Created table: applications")
    else:
        logger.info("Table applications already exists, skipping create")

    # ── earnings ──────────────────────────────────────────────────────────────
    if not _table_exists(conn, 'earnings'):
        op.create_table(
            'earnings',
            _id_column(),
            sa.Column('facility_id', UUID(as_uuid=False), sa.ForeignKey('facilities.id'), nullable=False, index=True),
            sa.Column('personnel_id', UUID(as_uuid=False), sa.ForeignKey('personnel.id'), nullable=False),
            sa.Column('duty_id', UUID(as_uuid=False), sa.ForeignKey('duties.id'), nullable=False, index=True),
            sa.Column('amount', sa.Numeric(10, 2), nullable=False),
            sa.Column('payment_status', sa.String(20), nullable=False, server_default='PENDING'),
            sa.Column('earned_on', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
            sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        )
        logger.info("Created table: earnings")
    else:
        logger.info("Table earnings already exists, skipping create")


def downgrade() -> None:
    conn = op.get_bind()

    for table in ['earnings', 'applications', 'duties', 'personnel', 'facility_settings', 'facilities']:
        if _table_exists(conn, table):
            op.drop_table(table)
