"""Word ingestion: persistence, enrichment, preview sessions and the coordinator."""
