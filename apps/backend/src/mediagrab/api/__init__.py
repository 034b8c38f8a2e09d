"""HTTP API for mediagrab."""
