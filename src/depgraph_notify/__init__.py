"""
Notification scheduler for the dependency-graph editor extension.

Callers go through `depgraph_notify.notify.NotificationService`; the host
supplies the display surface (see `depgraph_notify.notify.adapter`).
"""

__version__ = "0.1.0"
