"""Alerts — threshold evaluation over metrics snapshots."""
