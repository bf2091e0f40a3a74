"""sheetbol: edit Excel workbooks with mixed Hindi/English instructions."""

__version__ = "0.1.0"
