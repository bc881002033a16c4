"""GidroAtlas REST API."""
