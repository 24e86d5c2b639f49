"""gila: a plain-text task tracker that keeps tasks in status directories."""

__version__ = "0.1.0"
