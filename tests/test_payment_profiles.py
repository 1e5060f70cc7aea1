from __future__ import annotations

import json

import pytest

from invoify.client.payment_profiles import PaymentProfileError, PaymentProfileStore
from invoify.models import PaymentInformation
from invoify.variables import LOCAL_STORAGE_SAVED_PAYMENT_INFO_KEY


def _info(**overrides) -> PaymentInformation:
    values = {"bank_name": "Emirates NBD", "account_name": "Wings", "account_number": "1001", "iban": "AE07"}
    values.update(overrides)
    return PaymentInformation(**values)


def test_save_requires_core_fields(memory_store) -> None:
    store = PaymentProfileStore(memory_store)
    with pytest.raises(PaymentProfileError):
        store.save(_info(account_number=""))
    assert store.list() == []


def test_default_name_and_round_trip(memory_store) -> None:
    store = PaymentProfileStore(memory_store)
    profile = store.save(_info())
    assert profile.name == "Emirates NBD - Wings"
    assert profile.saved_at

    stored = json.loads(memory_store.get(LOCAL_STORAGE_SAVED_PAYMENT_INFO_KEY))
    assert stored[0]["bankName"] == "Emirates NBD"
    assert stored[0]["savedAt"] == profile.saved_at

    loaded = store.list()[0].to_payment_information()
    assert loaded == _info()


def test_named_profiles_get_unique_ids(memory_store) -> None:
    store = PaymentProfileStore(memory_store)
    first = store.save(_info(), name="Main")
    second = store.save(_info(bank_name="ADCB"), name="  ")
    assert first.name == "Main"
    assert second.name == "ADCB - Wings"
    assert first.id != second.id
    assert [p.id for p in store.list()] == [first.id, second.id]


def test_delete(memory_store) -> None:
    store = PaymentProfileStore(memory_store)
    profile = store.save(_info())
    assert store.delete("missing") is False
    assert store.delete(profile.id) is True
    assert store.list() == []


def test_corrupt_storage_reads_as_empty(memory_store) -> None:
    memory_store.set(LOCAL_STORAGE_SAVED_PAYMENT_INFO_KEY, "[{broken")
    assert PaymentProfileStore(memory_store).list() == []
