"""HTTP API for quiz statistics."""
