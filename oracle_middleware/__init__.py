"""
Agoric oracle middleware.

Bridges an off-chain price reporting job to Agoric price feed contracts:
submits prices round by round with confirmation, and monitors what each
oracle has submitted.
"""

__version__ = "0.1.0"
