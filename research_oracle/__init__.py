"""Research Oracle - consensus probability estimates with on-chain attestation."""

__version__ = "0.1.0"
