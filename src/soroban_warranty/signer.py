"""External signer contract.

The signer is an out-of-process agent (a browser wallet, a remote KMS) that takes
a base64 envelope and hands back a signed one. It is passed explicitly to every
write invocation; the pipeline keeps no wallet state of its own.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from stellar_sdk import Keypair, TransactionEnvelope

log = logging.getLogger("soroban_warranty.signer")


@dataclass(frozen=True, slots=True)
class SignResult:
    signed_tx_xdr: str | None = None
    error: str | None = None


class ExternalSigner(Protocol):
    """Protocol for client-side transaction signing."""

    async def sign_transaction(self, tx_xdr: str, *, network_passphrase: str) -> SignResult:
        """Sign a Stellar transaction.

        May wait indefinitely on human approval; callers cancel the awaiting task
        rather than imposing a timeout here.

        Args:
            tx_xdr: Base64 XDR of the assembled transaction envelope.
            network_passphrase: Network passphrase for signing context.

        Returns:
            SignResult with either the signed envelope XDR or an error.
        """
        ...


class KeypairSigner:
    """Signs with a locally held secret key. For tooling and tests."""

    def __init__(self, keypair: Keypair):
        self.keypair = keypair

    @classmethod
    def from_secret(cls, secret: str) -> "KeypairSigner":
        return cls(Keypair.from_secret(secret))

    @property
    def address(self) -> str:
        return self.keypair.public_key

    async def sign_transaction(self, tx_xdr: str, *, network_passphrase: str) -> SignResult:
        try:
            envelope = TransactionEnvelope.from_xdr(tx_xdr, network_passphrase)
        except ValueError as e:
            return SignResult(error=f"Cannot read transaction: {e}")
        envelope.sign(self.keypair)
        log.debug("Signed %s as %s", envelope.hash_hex(), self.address)
        return SignResult(signed_tx_xdr=envelope.to_xdr())
