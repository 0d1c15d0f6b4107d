"""Infrastructure layer: configuration, logging and the store HTTP client."""
