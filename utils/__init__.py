"""Pure helpers, resilience and ambient concerns (config, logging, metrics)."""
