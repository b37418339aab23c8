"""Chat gateway: brokers chat turns between users, storage and an LLM provider."""

__version__ = "0.1.0"
