"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Simulator (in-process controller, session table, demo catalog)
- Transport (in-process and HTTP)
"""
