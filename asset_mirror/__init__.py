"""
Asset Mirror — fastest-mirror selection and identifier rewriting for remote assets.
"""

__version__ = "0.1.0"
