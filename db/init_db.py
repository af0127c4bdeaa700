"""
db/init_db.py
-------------
Creates the database schema (tables) if they do not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db

The `leases` and `users` tables belong to the wider portal; only the
foreign keys to them are declared here.
"""

from db.connection import get_connection, release_connection
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
-- Recurring payments table: rent and other periodic charges per lease
CREATE TABLE IF NOT EXISTS recurring_payments (
    id              SERIAL PRIMARY KEY,
    lease_id        INTEGER NOT NULL REFERENCES leases(id),
    payment_type    VARCHAR(20) NOT NULL
                    CHECK (payment_type IN ('rent', 'utility', 'maintenance_fee', 'other')),
    amount          NUMERIC(10,2) NOT NULL CHECK (amount > 0),
    frequency       VARCHAR(20) NOT NULL
                    CHECK (frequency IN ('monthly', 'quarterly', 'annual')),
    due_day         INTEGER NOT NULL CHECK (due_day BETWEEN 1 AND 31),
    start_date      DATE NOT NULL,
    end_date        DATE,
    is_active       BOOLEAN NOT NULL DEFAULT TRUE,
    deactivated_on  DATE,
    suspensions     JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_by      INTEGER REFERENCES users(id),
    created_at      TIMESTAMPTZ DEFAULT NOW(),
    updated_at      TIMESTAMPTZ DEFAULT NOW(),
    CONSTRAINT valid_date_range CHECK (end_date IS NULL OR end_date > start_date)
);

-- Indexes for faster queries
CREATE INDEX IF NOT EXISTS idx_recurring_payments_lease_id ON recurring_payments(lease_id);
CREATE INDEX IF NOT EXISTS idx_recurring_payments_active ON recurring_payments(is_active);
CREATE INDEX IF NOT EXISTS idx_recurring_payments_type ON recurring_payments(payment_type);
CREATE INDEX IF NOT EXISTS idx_recurring_payments_dates ON recurring_payments(start_date, end_date);

-- Keep updated_at current on every update
CREATE OR REPLACE FUNCTION update_recurring_payments_updated_at()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS trigger_update_recurring_payments_updated_at ON recurring_payments;
CREATE TRIGGER trigger_update_recurring_payments_updated_at
BEFORE UPDATE ON recurring_payments
FOR EACH ROW
EXECUTE FUNCTION update_recurring_payments_updated_at();
"""


def create_tables() -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()
        logger.info("Database schema initialized successfully.")
    except Exception as e:
        conn.rollback()
        logger.error(f"Failed to initialize schema: {e}")
        raise
    finally:
        release_connection(conn)


if __name__ == "__main__":
    from db.connection import init_pool
    init_pool()
    create_tables()
