"""
db/ - Database Layer
====================
Handles PostgreSQL connections and schema initialization for the
recurring_payments table.
This layer is the lowest in the architecture and has no dependencies on other layers.
"""
