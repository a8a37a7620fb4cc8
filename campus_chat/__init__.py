"""Campus Chat: direct-message conversations between teachers and students."""

__version__ = "0.1.0"
