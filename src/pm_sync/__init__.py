"""Project-management client state synchronization layer.

Async controllers for projects, calendar events, notifications, invitations and
time logs, backed by a single HTTP façade to the project-management REST API and
a reconnecting WebSocket notification channel with polling fallback.
"""

__version__ = "0.1.0"
