"""Ingestion layer.

This package turns raw geodata payloads (GeoJSON feature collections from
the WFS service) into typed domain entities.
"""

__all__: list[str] = []
