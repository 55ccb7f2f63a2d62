"""Stellar/Soroban integration components."""

from gmammoth.stellar.transport import SorobanLogStream, SorobanTransport
from gmammoth.stellar.wallet import KeypairWallet

__all__ = ["SorobanLogStream", "SorobanTransport", "KeypairWallet"]
