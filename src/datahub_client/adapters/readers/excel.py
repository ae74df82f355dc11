"""Pandas reader adapter for spreadsheet workbooks.

Provides a SheetReader implementation that loads xls/xlsx sheets into rows.
"""

from __future__ import annotations

import io
from typing import Any

import pandas as pd


class PandasSheetReader:
    """SheetReader adapter for xls/xlsx workbooks using pandas.

    Wraps pd.ExcelFile and pd.read_excel() (openpyxl for xlsx, xlrd for xls)
    to satisfy the SheetReader protocol.
    """

    def sheet_names(self, content: bytes) -> list[str]:
        """List the sheet names of a workbook.

        Args:
            content: Raw workbook bytes.

        Returns:
            Sheet names in workbook order.
        """
        with pd.ExcelFile(io.BytesIO(content)) as workbook:
            return [str(name) for name in workbook.sheet_names]

    def read_rows(self, content: bytes, sheet_index: int) -> list[list[Any]]:
        """Load one sheet as a list of rows, header row included.

        Args:
            content: Raw workbook bytes.
            sheet_index: 1-based sheet position.

        Returns:
            Rows as lists of Python values; blank cells are None.
        """
        frame = pd.read_excel(
            io.BytesIO(content), sheet_name=sheet_index - 1, header=None
        )
        frame = frame.astype(object).where(pd.notna(frame), None)
        return frame.values.tolist()
