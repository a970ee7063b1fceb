"""csvclean: encapsulate every value of a delimited text file."""

__version__ = "0.1.0"
