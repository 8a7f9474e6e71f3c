"""Single-flight exclusive task gate and the image actions built on it."""

__version__ = "0.1.0"
