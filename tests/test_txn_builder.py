import pytest
from stellar_sdk import Account, Keypair, TransactionEnvelope

from soroban_warranty.constants import PLACEHOLDER_ACCOUNT, Method
from soroban_warranty.errors import (
    AuthorizationMismatchError,
    DateOrderError,
    InvalidAddressError,
    InvalidArgumentError,
    ValidationError,
)
from soroban_warranty.txn_builder import REGISTRY, build_invocation, build_request, placeholder_source

from conftest import CONTRACT_ID, PASSPHRASE, invoked

JAN_2024 = 1_704_067_200
JAN_2025 = 1_735_689_600


def register(owner, signer, purchase=JAN_2024, expiration=JAN_2025, **kw):
    return build_request(
        Method.REGISTER_WARRANTY, owner, "Laptop", "SN-1", "Acme", purchase, expiration, signer=signer, **kw
    )


def test_every_method_is_registered():
    assert set(REGISTRY) == set(Method)
    assert {m for m, s in REGISTRY.items() if s.read_only} == {
        Method.GET_WARRANTY,
        Method.IS_WARRANTY_EXPIRED,
        Method.GET_WARRANTIES_BY_OWNER,
        Method.GET_WARRANTY_COUNT,
    }


def test_register_encodes_six_args():
    kp = Keypair.random()
    req = register(kp.public_key, kp.public_key)
    assert req.method == Method.REGISTER_WARRANTY
    assert len(req.args) == 6
    assert req.signer == kp.public_key


def test_register_owner_must_be_signer():
    with pytest.raises(AuthorizationMismatchError, match="must match the signer"):
        register(Keypair.random().public_key, Keypair.random().public_key)


@pytest.mark.parametrize("expiration", [JAN_2024, JAN_2024 - 1])
def test_register_expiration_after_purchase(expiration):
    kp = Keypair.random()
    with pytest.raises(DateOrderError, match="Expiration date must be after purchase date"):
        register(kp.public_key, kp.public_key, expiration=expiration)


def test_register_purchase_not_in_future():
    kp = Keypair.random()
    with pytest.raises(DateOrderError, match="future"):
        register(kp.public_key, kp.public_key, now=JAN_2024 - 1)


def test_register_accepts_iso_dates():
    kp = Keypair.random()
    req = register(kp.public_key, kp.public_key, purchase="2024-01-01", expiration="2025-01-01")
    assert len(req.args) == 6


def test_writes_need_a_valid_signer():
    with pytest.raises(InvalidAddressError):
        build_request(Method.REVOKE_WARRANTY, 1, signer=None)
    with pytest.raises(InvalidAddressError):
        build_request(Method.REVOKE_WARRANTY, 1, signer="not-an-address")


def test_reads_need_no_signer():
    req = build_request(Method.GET_WARRANTY, "12")
    assert req.signer is None
    assert len(req.args) == 1


@pytest.mark.parametrize("bad", ["abc", -1, 2**64])
def test_bad_warranty_id(bad):
    with pytest.raises(InvalidArgumentError):
        build_request(Method.GET_WARRANTY, bad)


def test_update_status_rejects_unknown_status():
    kp = Keypair.random()
    with pytest.raises(InvalidArgumentError, match="Unknown status"):
        build_request(Method.UPDATE_STATUS, 1, "Lost", signer=kp.public_key)


def test_transfer_checks_new_owner():
    kp = Keypair.random()
    with pytest.raises(ValidationError):
        build_request(Method.TRANSFER_OWNERSHIP, 1, "nobody", signer=kp.public_key)


def test_unknown_method():
    with pytest.raises(ValueError, match="Unsupported contract method"):
        build_request("burn_everything")


def test_build_invocation_single_call_and_snapshot_untouched():
    kp = Keypair.random()
    source = Account(kp.public_key, 41)
    req = build_request(Method.REVOKE_WARRANTY, 3, signer=kp.public_key)
    env = build_invocation(req, source, contract_id=CONTRACT_ID, network_passphrase=PASSPHRASE)

    assert source.sequence == 41
    assert env.transaction.sequence == 42
    assert len(env.transaction.operations) == 1
    assert env.signatures == []
    assert env.transaction.preconditions.time_bounds.max_time == 0
    fn, args = invoked(env.to_xdr())
    assert fn == "revoke_warranty"
    assert len(args) == 1


def test_build_invocation_with_timeout():
    req = build_request(Method.GET_WARRANTY_COUNT)
    env = build_invocation(
        req, placeholder_source(), contract_id=CONTRACT_ID, network_passphrase=PASSPHRASE, timeout=60
    )
    assert env.transaction.source.account_id == PLACEHOLDER_ACCOUNT
    assert env.transaction.preconditions.time_bounds.max_time > 0
    assert isinstance(TransactionEnvelope.from_xdr(env.to_xdr(), PASSPHRASE), TransactionEnvelope)
