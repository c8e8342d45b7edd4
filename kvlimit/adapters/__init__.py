"""Storage and algorithm adapters."""
