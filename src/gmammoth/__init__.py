"""gmammoth - transaction and event client for the gMammoth Soroban contract."""

__version__ = "0.1.0"
