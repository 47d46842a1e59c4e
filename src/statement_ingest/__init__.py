"""Statement Ingest: normalize bank statement exports and filter re-imports."""

__version__ = "0.1.0"
