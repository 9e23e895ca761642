from __future__ import annotations

import io

import pandas as pd

from ..core.constants import PIVOT_TOTAL_KEY
from .aggregation import PivotTable

PIVOT_SHEET_NAME = "Timesheet"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def pivot_to_frame(pivot: PivotTable) -> pd.DataFrame:
    """Display frame of the pivot: one row per task line plus the total row."""
    columns = ["Task", *pivot.dates, PIVOT_TOTAL_KEY]
    return pd.DataFrame(pivot.as_text_rows(), columns=columns)


def pivot_to_xlsx(pivot: PivotTable) -> io.BytesIO:
    # in-memory workbook
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        pivot_to_frame(pivot).to_excel(writer, index=False, sheet_name=PIVOT_SHEET_NAME)
    output.seek(0)
    return output
