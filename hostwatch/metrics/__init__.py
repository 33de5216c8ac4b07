"""Metrics — point-in-time hardware snapshots and a background poller."""
