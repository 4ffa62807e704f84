"""HTTP relay that sends one email through caller-supplied SMTP credentials."""

__version__ = "0.1.0"
