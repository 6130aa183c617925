"""agentpm - epic workflow manager for coding agents."""

__version__ = "0.1.0"
