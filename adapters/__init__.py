"""CRAWL Adapters — Site-specific extraction for investor directories."""
