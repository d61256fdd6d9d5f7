"""Authentication, password hashing, events, logging and mail for applications."""

__version__ = "0.1.0"

__all__ = ["auth", "events", "hashing", "logs", "mail"]