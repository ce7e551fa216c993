"""Chat Relay - conversational relay over hosted assistant and completion endpoints."""

__version__ = "1.0.0"
