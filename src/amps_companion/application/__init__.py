"""
Application Layer

Contains the services that drive a controller on behalf of a UI.

Structure:
- services/: Session client (connection, keepalive, commands) and state store
- interfaces/: Port interfaces for infrastructure adapters
"""
