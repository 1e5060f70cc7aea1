from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from ..models import PaymentInformation, PaymentProfile
from ..variables import LOCAL_STORAGE_SAVED_PAYMENT_INFO_KEY, SHORT_DATE_FORMAT
from .storage import KeyValueStore, read_json, write_json

logger = logging.getLogger(__name__)


class PaymentProfileError(ValueError):
    pass


class PaymentProfileStore:
    def __init__(self, store: KeyValueStore, key: str = LOCAL_STORAGE_SAVED_PAYMENT_INFO_KEY) -> None:
        self._store = store
        self._key = key

    def list(self) -> list[PaymentProfile]:
        raw = read_json(self._store, self._key, [])
        if not isinstance(raw, list):
            return []
        profiles: list[PaymentProfile] = []
        for entry in raw:
            try:
                profiles.append(PaymentProfile.model_validate(entry))
            except ValidationError:
                logger.warning("payment_profiles.skipped_invalid entry=%r", entry)
        return profiles

    def _write(self, profiles: list[PaymentProfile]) -> None:
        write_json(self._store, self._key, [p.model_dump(mode="json", by_alias=True) for p in profiles])

    def save(self, payment_information: PaymentInformation, name: str = "") -> PaymentProfile:
        info = payment_information
        if not info.bank_name.strip() or not info.account_name.strip() or not info.account_number.strip():
            raise PaymentProfileError(
                "Please fill in at least Bank Name, Account Name, and Account Number before saving."
            )
        profile = PaymentProfile(
            id=str(time.time_ns() // 1_000_000),
            name=(name or "").strip() or f"{info.bank_name} - {info.account_name}",
            bank_name=info.bank_name,
            account_name=info.account_name,
            account_number=info.account_number,
            iban=info.iban,
            swift_code=info.swift_code,
            saved_at=datetime.now().strftime(SHORT_DATE_FORMAT),
        )
        profiles = self.list()
        # Millisecond ids can collide when saving twice in a row.
        existing_ids = {p.id for p in profiles}
        while profile.id in existing_ids:
            profile.id = str(int(profile.id) + 1)
        profiles.append(profile)
        self._write(profiles)
        logger.info("payment_profiles.saved id=%s", profile.id)
        return profile

    def get(self, profile_id: str) -> Optional[PaymentProfile]:
        return next((p for p in self.list() if p.id == profile_id), None)

    def delete(self, profile_id: str) -> bool:
        profiles = self.list()
        remaining = [p for p in profiles if p.id != profile_id]
        if len(remaining) == len(profiles):
            return False
        self._write(remaining)
        logger.info("payment_profiles.deleted id=%s", profile_id)
        return True
