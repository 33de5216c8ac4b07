"""Audit — bounded, concurrently appendable action log."""
