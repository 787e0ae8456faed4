"""HTTP output: publishes event records to a remote HTTP endpoint."""

__version__ = "1.0.0"
