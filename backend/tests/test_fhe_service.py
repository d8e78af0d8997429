# SPDX-License-Identifier: Apache-2.0
"""Encrypted-value substrate: BFV handles, comparisons, input proofs and grants."""
import pytest
import tenseal as ts

from app.config import settings
from app.core.exceptions import InvalidProofError, NotFoundError
from app.services.fhe_service import CONTEXT_FILE, EncryptedScalars, FheKeys, input_proof
from identities import ALICE, BOB

CONTRACT = settings.contract_address


@pytest.fixture
def scalars(session, fhe_keys):
    return EncryptedScalars(session, fhe_keys)


def _value(scalars, handle):
    return scalars.decrypt_for_oracle(handle)


def test_encrypt_returns_opaque_handle(scalars):
    handle = scalars.encrypt(8)
    assert handle.startswith("0x")
    assert len(handle) == 66
    assert _value(scalars, handle) == 8


def test_arithmetic(scalars):
    a, b = scalars.encrypt(9), scalars.encrypt(4)
    assert _value(scalars, scalars.add(a, b)) == 13
    assert _value(scalars, scalars.sub(a, b)) == 5
    assert _value(scalars, scalars.mul(a, b)) == 36


def test_comparisons(scalars):
    a, b = scalars.encrypt(3), scalars.encrypt(7)
    assert _value(scalars, scalars.lt(a, b)) == 1
    assert _value(scalars, scalars.lt(b, a)) == 0
    assert _value(scalars, scalars.eq(a, scalars.encrypt(3))) == 1
    assert _value(scalars, scalars.eq(a, b)) == 0


def test_select(scalars):
    a, b = scalars.encrypt(11), scalars.encrypt(22)
    assert _value(scalars, scalars.select(scalars.encrypt(1), a, b)) == 11
    assert _value(scalars, scalars.select(scalars.encrypt(0), a, b)) == 22


@pytest.mark.parametrize("value,expected", [(1, 1), (10, 10), (5, 5), (0, 0), (11, 0), (500, 0)])
def test_clamp_to_range(scalars, value, expected):
    assert _value(scalars, scalars.clamp_to_range(scalars.encrypt(value), 1, 10)) == expected


def test_unknown_handle(scalars):
    with pytest.raises(NotFoundError):
        scalars.add("0xdead", scalars.encrypt(1))


def test_register_input_with_public_context(scalars, fhe_keys):
    public = ts.context_from(fhe_keys.public_context_bytes)
    assert not public.has_secret_key()
    data = ts.bfv_vector(public, [6]).serialize()
    handle, proof = scalars.register_input(data, CONTRACT, ALICE)
    assert proof == input_proof(handle, CONTRACT, ALICE)
    assert scalars.from_external_input(handle, proof, CONTRACT, ALICE) == handle
    assert _value(scalars, handle) == 6


def test_proof_is_bound_to_user_and_contract(scalars, fhe_keys):
    public = ts.context_from(fhe_keys.public_context_bytes)
    handle, proof = scalars.register_input(ts.bfv_vector(public, [6]).serialize(), CONTRACT, ALICE)
    with pytest.raises(InvalidProofError):
        scalars.from_external_input(handle, proof, CONTRACT, BOB)
    with pytest.raises(InvalidProofError):
        scalars.from_external_input(handle, proof, "0xother", ALICE)
    with pytest.raises(InvalidProofError):
        scalars.from_external_input("0x" + "0" * 64, proof, CONTRACT, ALICE)


def test_register_input_rejects_garbage(scalars):
    with pytest.raises(InvalidProofError):
        scalars.register_input(b"not a ciphertext", CONTRACT, ALICE)


def test_register_input_rejects_multi_slot(scalars, fhe_keys):
    public = ts.context_from(fhe_keys.public_context_bytes)
    with pytest.raises(InvalidProofError):
        scalars.register_input(ts.bfv_vector(public, [1, 2]).serialize(), CONTRACT, ALICE)


def test_grants(scalars):
    handle = scalars.encrypt(1)
    assert not scalars.is_allowed(handle, ALICE)
    scalars.allow(handle, ALICE.upper().replace("0X", "0x"))
    scalars.allow(handle, ALICE)
    scalars.allow_this(handle)
    assert scalars.is_allowed(handle, ALICE)
    assert scalars.is_allowed(handle, CONTRACT)
    assert not scalars.is_allowed(handle, BOB)


def test_keys_persist_and_reload(tmp_path):
    first = FheKeys.load_or_create(tmp_path, 4096, settings.bfv_plain_modulus)
    assert (tmp_path / CONTEXT_FILE).exists()
    second = FheKeys.load_or_create(tmp_path, 4096, settings.bfv_plain_modulus)
    vec = ts.bfv_vector(first.context, [42])
    assert ts.bfv_vector_from(second.context, vec.serialize()).decrypt() == [42]
