"""Character Studio - API gateway for AI-described characters and their visualizations."""

__version__ = "0.1.0"

__all__ = ["__version__"]
