"""HTTP API for habitloop."""
