"""toolprobe - scenario evaluation harness for tool-calling agents."""

__version__ = "0.1.0"
