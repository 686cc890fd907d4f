"""Run a declared workload inside a throwaway Docker container."""

__version__ = "0.1.0"
