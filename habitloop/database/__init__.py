"""Durable storage for habitloop."""
