"""Types, secp256k1 cryptography, consensus checks and log filtering for relaying signed messages to EVM chains."""

__version__ = "0.1.0"