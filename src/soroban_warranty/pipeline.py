import logging
from collections.abc import Sequence
from typing import Any

import httpx
from stellar_sdk import StrKey, TransactionEnvelope, xdr

import soroban_warranty.constants as C
from soroban_warranty import codec
from soroban_warranty.accounts import AccountResolver
from soroban_warranty.assemble import assemble, compute_fee
from soroban_warranty.config import ClientConfig
from soroban_warranty.errors import (
    SigningError,
    SubmissionRejected,
    WarrantyClientError,
    classify_simulation_failure,
)
from soroban_warranty.extract import decode_retval, extract_result
from soroban_warranty.models import InvocationRequest, InvocationResult, SimulationFailure, SubmissionOutcome
from soroban_warranty.reconcile import reconcile
from soroban_warranty.rpc import SorobanRpc
from soroban_warranty.signer import ExternalSigner
from soroban_warranty.txn_builder import build_invocation, placeholder_source, require_account

log = logging.getLogger("soroban_warranty.pipeline")


class ContractPipeline:
    """Simulate-then-submit invocation of one contract.

    Holds only collaborators and settings. Every call builds its own transaction
    from a fresh sequence snapshot, so nothing is shared between invocations.
    Writes for the same signer must be awaited one at a time by the caller.
    """

    def __init__(
        self,
        *,
        contract_id: str,
        network_passphrase: str,
        rpc: SorobanRpc,
        accounts: AccountResolver,
        base_fee: int = C.DEFAULT_BASE_FEE,
        tx_timeout: int | None = None,
        confirm_submission: bool = False,
        confirm_timeout: float = C.CONFIRM_TIMEOUT,
        confirm_interval: float = C.CONFIRM_INTERVAL,
    ):
        if not contract_id:
            raise ValueError("Contract ID is required")
        if not StrKey.is_valid_contract(contract_id):
            raise ValueError(f"Invalid contract ID {contract_id!r}")
        self.contract_id = contract_id
        self.network_passphrase = network_passphrase
        self.rpc = rpc
        self.accounts = accounts
        self.base_fee = base_fee
        self.tx_timeout = tx_timeout
        self.confirm_submission = confirm_submission
        self.confirm_timeout = confirm_timeout
        self.confirm_interval = confirm_interval

    @classmethod
    def from_config(cls, cfg: ClientConfig, *, http: httpx.AsyncClient | None = None) -> "ContractPipeline":
        return cls(
            contract_id=cfg.contract_id,
            network_passphrase=cfg.network_passphrase,
            rpc=SorobanRpc(cfg.rpc_url, timeout=cfg.rpc_timeout, http=http),
            accounts=AccountResolver(cfg.horizon_url, timeout=cfg.rpc_timeout, http=http),
            base_fee=cfg.base_fee,
            tx_timeout=cfg.tx_timeout,
            confirm_submission=cfg.confirm_submission,
            confirm_timeout=cfg.confirm_timeout,
            confirm_interval=cfg.confirm_interval,
        )

    async def aclose(self) -> None:
        await self.rpc.aclose()
        await self.accounts.aclose()

    def _build(self, request: InvocationRequest, source) -> TransactionEnvelope:
        return build_invocation(
            request,
            source,
            contract_id=self.contract_id,
            network_passphrase=self.network_passphrase,
            base_fee=self.base_fee,
            timeout=self.tx_timeout,
        )

    async def invoke(
        self,
        method: str,
        args: Sequence[xdr.SCVal],
        signer_address: str,
        signer: ExternalSigner,
    ) -> InvocationResult:
        """Run the full write pipeline and return the typed result.

        Raises only WarrantyClientError subclasses. Anything raised before
        send_transaction has no on-chain effect.
        """
        require_account(signer_address, "signer")
        request = InvocationRequest(method=method, args=tuple(args), signer=signer_address)
        log.info("Starting contract invocation: method=%s signer=%s args=%d", method, signer_address, len(request.args))

        source = await self.accounts.load_account(signer_address)
        unsigned = self._build(request, source)

        outcome = await self.rpc.simulate_transaction(unsigned)
        if isinstance(outcome, SimulationFailure):
            log.error("Simulation failed for %s: %s", method, outcome.error)
            raise classify_simulation_failure(method, outcome.error)
        log.info("Simulation successful: cost=%s result=%s", outcome.cost, outcome.retval is not None)

        prepared = compute_fee(unsigned, outcome, method=method)
        assembled = assemble(prepared, outcome, method=method)

        signed_xdr = await self._sign(assembled, signer, method)
        final = reconcile(assembled, signed_xdr, self.network_passphrase, method=method)
        log.info("Signed transaction ready via %s path, %d signature(s)", final.path, len(final.envelope.signatures))

        submission = await self.rpc.send_transaction(final.envelope)
        self._check_submission(submission, method)
        log.info("Transaction sent. hash=%s status=%s", submission.hash, submission.status)

        status = submission.status
        if self.confirm_submission and submission.hash:
            status = await self._confirm(submission.hash, method)

        # The simulated retval is what a successfully submitted, unmodified
        # transaction returns; no follow-up getTransaction decode is needed.
        return extract_result(method, outcome, tx_hash=submission.hash, status=status)

    async def query(self, method: str, args: Sequence[xdr.SCVal] = ()) -> Any | None:
        """Read-only call: simulate with the placeholder account and decode the retval.

        Returns None when the ledger reports an error or nothing; transport
        failures still raise.
        """
        request = InvocationRequest(method=method, args=tuple(args))
        log.debug("Starting read-only contract call: method=%s args=%d", method, len(request.args))
        unsigned = self._build(request, placeholder_source())

        outcome = await self.rpc.simulate_transaction(unsigned)
        if isinstance(outcome, SimulationFailure):
            log.warning("Read simulation failed for %s: %s", method, outcome.error)
            return None
        if outcome.retval is None:
            log.warning("No result in simulation for %s", method)
            return None
        return decode_retval(outcome.retval, method)

    async def _sign(self, assembled: TransactionEnvelope, signer: ExternalSigner, method: str) -> str:
        tx_xdr = codec.envelope_to_xdr(assembled)
        log.info("Requesting signature, XDR length %d", len(tx_xdr))
        result = await signer.sign_transaction(tx_xdr, network_passphrase=self.network_passphrase)
        if result.error:
            log.error("Signer error: %s", result.error)
            raise SigningError(f"Failed to sign transaction: {result.error}", method=method, detail=result.error)
        if not result.signed_tx_xdr:
            raise SigningError("Transaction was not signed", method=method)
        return result.signed_tx_xdr

    @staticmethod
    def _check_submission(submission: SubmissionOutcome, method: str) -> None:
        if submission.error_result_xdr or submission.status == C.SendStatus.ERROR:
            log.error("Transaction send failed: %s", submission.error_result_xdr)
            raise SubmissionRejected(
                f"Transaction failed: {submission.error_result_xdr}", method=method, detail=submission
            )
        if submission.status == C.SendStatus.TRY_AGAIN_LATER:
            raise SubmissionRejected(
                "Network is busy and did not accept the transaction; submit it again later",
                method=method,
                detail=submission,
            )

    async def _confirm(self, tx_hash: str, method: str) -> str:
        try:
            status = await self.rpc.wait_for_status(
                tx_hash, timeout=self.confirm_timeout, interval=self.confirm_interval
            )
        except WarrantyClientError as e:
            # Already submitted: a failed status poll must not fail the call
            log.warning("Could not confirm %s: %s", tx_hash, e)
            return C.SendStatus.PENDING
        if status == C.TxStatus.FAILED:
            raise SubmissionRejected(f"Transaction {tx_hash} failed on-chain", method=method, detail=status)
        return status
