"""Job discovery, AI relevance scoring and interview prep."""
