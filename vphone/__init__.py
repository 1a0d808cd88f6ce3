"""All-in-one vPhone launcher."""

__version__ = '0.1.0'
