"""Internal helpers shared across trellis modules. Not public API."""
