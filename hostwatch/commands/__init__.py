"""Spawn, drain, time out and audit external commands."""
