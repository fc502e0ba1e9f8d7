"""Preparation and authorization assembly.

``compute_fee`` turns an unsigned envelope into a prepared one (resource data
attached, fee raised by the simulated resource fee). ``assemble`` then injects
the authorization entries the simulation asked for. Both run between simulation
and signing; the signer must see the entries that will be enforced on-chain.
"""

import copy
import logging

from stellar_sdk import TransactionEnvelope, xdr
from stellar_sdk.operation import InvokeHostFunction

from soroban_warranty.errors import AssemblyError, SimulationMalformed
from soroban_warranty.models import SimulationSuccess

log = logging.getLogger("soroban_warranty.assemble")


def _single_invoke_op(envelope: TransactionEnvelope, method: str | None) -> InvokeHostFunction:
    ops = envelope.transaction.operations
    if len(ops) != 1 or not isinstance(ops[0], InvokeHostFunction):
        raise AssemblyError(
            f"Expected exactly 1 InvokeHostFunction operation, got {[type(o).__name__ for o in ops]}",
            method=method,
        )
    return ops[0]


def compute_fee(unsigned: TransactionEnvelope, sim: SimulationSuccess, *, method: str | None = None) -> TransactionEnvelope:
    """Return a copy of ``unsigned`` with soroban resource data and the resource-based fee."""
    if not sim.transaction_data or not isinstance(sim.transaction_data, str):
        raise SimulationMalformed("Simulation returned no transaction data", method=method, detail=sim)
    try:
        soroban_data = xdr.SorobanTransactionData.from_xdr(sim.transaction_data)
    except Exception as e:
        raise SimulationMalformed(f"Unreadable transaction data from simulation: {e}", method=method, detail=e) from e

    prepared = copy.deepcopy(unsigned)
    _single_invoke_op(prepared, method)
    # unsigned.fee is still the placeholder bid (base fee x 1 op)
    prepared.transaction.fee = unsigned.transaction.fee + sim.min_resource_fee
    prepared.transaction.soroban_data = soroban_data
    log.info("Transaction prepared: fee %s -> %s (resource fee %s)",
             unsigned.transaction.fee, prepared.transaction.fee, sim.min_resource_fee)
    return prepared


def assemble(prepared: TransactionEnvelope, sim: SimulationSuccess, *, method: str | None = None) -> TransactionEnvelope:
    """Merge the simulation's authorization entries into the single operation.

    Entries already present on the operation win; simulated ones are only used
    when the operation carries none, mirroring how the RPC expects assembly.
    """
    assembled = copy.deepcopy(prepared)
    op = _single_invoke_op(assembled, method)

    if not op.auth:
        try:
            op.auth = [xdr.SorobanAuthorizationEntry.from_xdr(entry) for entry in sim.auth]
        except Exception as e:
            log.error("Assemble failed: %s", e)
            raise AssemblyError(
                f"Failed to assemble transaction: malformed authorization entry ({e})",
                method=method,
                detail=list(sim.auth),
            ) from e

    assembled.signatures = []
    log.info("Transaction assembled: %d auth entries, fee=%s, soroban data=%s",
             len(op.auth), assembled.transaction.fee, assembled.transaction.soroban_data is not None)
    return assembled


def operation_payload(envelope: TransactionEnvelope) -> bytes:
    """Bytes of the transaction body (operation, auth, resources), excluding signatures."""
    return envelope.transaction.to_xdr_object().to_xdr_bytes()
