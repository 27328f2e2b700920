"""Multi-tenant retention CRM backend."""

__version__ = "0.1.0"
