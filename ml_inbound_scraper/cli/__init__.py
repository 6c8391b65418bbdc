"""CLI de ML-Inbound-Scraper."""
