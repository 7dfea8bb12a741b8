"""Access-control models, indexed policy rules, role links and a thread-safe management API."""

__version__ = "0.1.0"