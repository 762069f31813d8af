"""Backend for a minimal social media platform: accounts and messages."""

__version__ = "1.0.0"
