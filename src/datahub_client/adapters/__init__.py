"""Adapters for the DataHub API, the object store and spreadsheet files."""
