"""Short-video feed engagement and navigation core."""

__version__ = "0.1.0"
