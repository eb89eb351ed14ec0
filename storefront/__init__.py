"""Storefront catalog service.

Product catalog read/write pipeline: validation, ownership rules, image
asset lifecycle, read-through caching and domain events around a
relational product store.
"""

__version__ = "0.1.0"
