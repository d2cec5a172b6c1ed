"""Key service — credential issuance, provider secret vault and requirement registry."""

__version__ = "0.1.0"
