"""HTTP API over sheetcore."""
