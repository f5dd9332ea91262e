"""Solana wallet forensics - flow graphs, funding provenance and risk patterns."""

__version__ = "0.1.0"
