"""Schema-adaptive read layer for blog posts and portfolio projects."""

__version__ = "0.3.0"
