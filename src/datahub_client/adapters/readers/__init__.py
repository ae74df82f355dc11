"""Reader adapters for loading resource content.

- Pandas: PandasSheetReader (xls, xlsx)
"""

from datahub_client.adapters.readers.excel import PandasSheetReader


__all__ = ["PandasSheetReader"]
