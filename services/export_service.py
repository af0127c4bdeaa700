"""
services/export_service.py
---------------------------
Generates CSV and Excel exports of payment obligations (rent roll).
"""

import io
from decimal import Decimal
from typing import Iterable

import pandas as pd

from models.obligation import ObligationStatus, PaymentObligation
from services.payment_history import days_overdue
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = [
    "Schedule",
    "Period start",
    "Period end",
    "Due date",
    "Amount",
    "Status",
]


class ExportService:
    """Generates downloadable obligation reports in CSV and Excel formats."""

    def to_dataframe(self, obligations: Iterable[PaymentObligation], as_of=None) -> pd.DataFrame:
        """
        Tabulate obligations, one row each.

        Args:
            obligations: Obligations to export (any iterable, consumed once).
            as_of: If given, a 'Days overdue' column is added relative to this date.
        """
        data = []
        for o in obligations:
            row = {
                "Schedule": o.schedule_id,
                "Period start": o.period_start.isoformat(),
                "Period end": o.period_end.isoformat(),
                "Due date": o.due_date.isoformat(),
                "Amount": o.amount,
                "Status": o.status.value,
            }
            if as_of is not None:
                row["Days overdue"] = days_overdue(o, as_of) if o.status == ObligationStatus.OVERDUE else 0
            data.append(row)

        columns = _COLUMNS + (["Days overdue"] if as_of is not None else [])
        return pd.DataFrame(data, columns=columns)

    def export_csv(self, obligations: Iterable[PaymentObligation], as_of=None) -> io.BytesIO:
        """
        Export obligations as a CSV file.

        Returns:
            A BytesIO buffer containing the CSV data.
        """
        df = self.to_dataframe(obligations, as_of=as_of)
        buffer = io.BytesIO()
        df.to_csv(buffer, index=False, encoding="utf-8-sig")
        buffer.seek(0)
        logger.info(f"Exported {len(df)} obligations as CSV")
        return buffer

    def summarize(self, df: pd.DataFrame) -> pd.DataFrame:
        """Total amount per status, summed in Decimal so cents stay exact."""
        summary = df.groupby("Status")["Amount"].agg(lambda amounts: sum(amounts, Decimal("0.00")))
        summary = summary.reset_index()
        summary.columns = ["Status", "Total"]
        return summary

    def export_excel(self, obligations: Iterable[PaymentObligation], as_of=None) -> io.BytesIO:
        """
        Export obligations as an Excel (.xlsx) file plus a per-status summary sheet.

        Returns:
            A BytesIO buffer containing the Excel data.
        """
        df = self.to_dataframe(obligations, as_of=as_of)
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            # Excel stores numbers as floats; convert only once totals are final.
            df.astype({"Amount": float}).to_excel(writer, sheet_name="Obligations", index=False)

            # Add summary sheet
            if not df.empty:
                summary = self.summarize(df)
                summary.astype({"Total": float}).to_excel(writer, sheet_name="Summary", index=False)

        buffer.seek(0)
        logger.info(f"Exported {len(df)} obligations as Excel")
        return buffer
