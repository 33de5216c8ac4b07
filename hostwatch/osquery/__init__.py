"""OS-Query — the boundary to the host's process table and hardware counters.

- OSQueryAdapter: abstract provider consumed by the rest of hostwatch
- PsutilAdapter: the production implementation
- Terminator: platform-specific forceful kill, chosen at startup
"""
