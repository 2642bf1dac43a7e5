"""perpclose - close-plan calculator for leveraged perpetual positions."""

__version__ = "0.1.0"
