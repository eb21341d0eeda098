"""Investment portfolio tracker for stocks and cryptocurrencies."""

__version__ = "1.0.0"
