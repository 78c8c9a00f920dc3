"""HTTP API for the cash custody engine."""
