"""
Airdrop Commitment Builder - Command Line Interface Package
"""

__version__ = "0.1.0"
