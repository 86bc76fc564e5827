"""Service layer: remote client, catalog cache, content and request workflow."""
