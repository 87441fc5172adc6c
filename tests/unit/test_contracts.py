"""
Unit tests for the contract lifecycle and signing workflow.
"""
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest

from stagebook.container import Services
from stagebook.domain.contracts.models import ContractData, ContractStatus
from stagebook.domain.contracts.services import transition_error
from stagebook.domain.signatures import SignatureData, SignerRole
from stagebook.shared.exceptions import (
    ConflictError,
    InvalidStatusTransitionError,
    NotFoundError,
)


async def _create(services: Services, contract_data: ContractData) -> str:
    result = await services.lifecycle.generate_contract(contract_data)
    return result.contract_id


class TestGenerateContract:
    """Tests for generate_contract."""

    @pytest.mark.asyncio
    async def test_complete_data_creates_draft(self, services: Services, contract_data, clock):
        """Test a complete submission stores a draft with no errors."""
        result = await services.lifecycle.generate_contract(contract_data)

        assert result.errors == []
        assert result.contract_id.startswith("CONTRACT-")
        stored = await services.lifecycle.get_contract(result.contract_id)
        assert stored.status is ContractStatus.DRAFT
        assert stored.performance_fee == Decimal("1500.00")
        assert stored.created_at == clock.now
        assert stored.signed_roles == set()

    @pytest.mark.asyncio
    async def test_records_accept_camel_case_keys(self, services: Services, contract_data):
        result = await services.lifecycle.generate_contract(contract_data)

        details = result.contract.performance_details
        assert details.duration == "90 minutes"
        assert details.set_length_minutes == 90
        assert result.contract.technical_requirements.microphone_count == 4
        assert result.contract.technical_requirements.pa_system == "Provided by venue"

    @pytest.mark.asyncio
    async def test_unknown_record_keys_kept_in_extra(self, services: Services, contract_data):
        data = replace(
            contract_data,
            technical_requirements={"microphoneCount": 2, "hazeMachine": "not allowed"},
        )

        result = await services.lifecycle.generate_contract(data)

        requirements = result.contract.technical_requirements
        assert requirements.extra == {"hazeMachine": "not allowed"}
        assert requirements.to_mapping() == {"microphone_count": 2, "hazeMachine": "not allowed"}
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_incomplete_data_still_stored(self, services: Services):
        """Test an incomplete submission is stored and its problems reported."""
        data = ContractData(
            title="",
            artist_id="",
            venue_id="venue-1",
            event_date=None,
            event_venue="Blue Note Hall",
            performance_fee=None,
            payment_terms="",
        )

        result = await services.lifecycle.generate_contract(data)

        fields = {error.field for error in result.errors}
        assert fields == {"title", "artist_id", "event_date", "performance_fee", "payment_terms"}
        stored = await services.lifecycle.get_contract(result.contract_id)
        assert stored.status is ContractStatus.DRAFT
        assert stored.event_date is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fee,message",
        [
            ("abc", "must be a number"),
            (-5, "must not be negative"),
            (0, "must be greater than zero"),
            ("1e30", "is out of range"),
        ],
    )
    async def test_invalid_fee(self, services: Services, contract_data, fee, message):
        result = await services.lifecycle.generate_contract(
            replace(contract_data, performance_fee=fee)
        )

        assert [(e.field, e.message) for e in result.errors] == [("performance_fee", message)]

    @pytest.mark.asyncio
    async def test_fee_rounded_to_cents(self, services: Services, contract_data):
        result = await services.lifecycle.generate_contract(
            replace(contract_data, performance_fee="99.999")
        )

        assert result.contract.performance_fee == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_mistyped_record_field_reported(self, services: Services, contract_data):
        result = await services.lifecycle.generate_contract(
            replace(contract_data, technical_requirements={"microphoneCount": "lots"})
        )

        assert len(result.errors) == 1
        assert result.errors[0].field.startswith("technical_requirements.")
        assert result.contract.technical_requirements.extra == {"microphoneCount": "lots"}

    @pytest.mark.asyncio
    async def test_get_unknown_contract_raises(self, services: Services):
        with pytest.raises(NotFoundError):
            await services.lifecycle.get_contract("CONTRACT-MISSING")


class TestStatusTransitions:
    """Tests for update_contract_status."""

    @pytest.mark.asyncio
    async def test_draft_to_pending(self, services: Services, contract_data):
        contract_id = await _create(services, contract_data)

        contract = await services.lifecycle.update_contract_status(
            contract_id, ContractStatus.PENDING_SIGNATURES
        )

        assert contract.status is ContractStatus.PENDING_SIGNATURES

    @pytest.mark.asyncio
    async def test_backwards_transition_rejected(self, services: Services, contract_data):
        contract_id = await _create(services, contract_data)
        await services.lifecycle.update_contract_status(contract_id, ContractStatus.PENDING_SIGNATURES)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await services.lifecycle.update_contract_status(contract_id, ContractStatus.DRAFT)

        assert exc_info.value.details["current_status"] == "pending_signatures"
        assert exc_info.value.details["requested_status"] == "draft"

    @pytest.mark.asyncio
    async def test_signed_requires_both_signatures(self, services: Services, contract_data):
        contract_id = await _create(services, contract_data)

        with pytest.raises(InvalidStatusTransitionError, match="both artist and venue"):
            await services.lifecycle.update_contract_status(contract_id, ContractStatus.SIGNED)

    @pytest.mark.asyncio
    async def test_cancelled_is_final(self, services: Services, contract_data):
        contract_id = await _create(services, contract_data)
        await services.lifecycle.update_contract_status(contract_id, ContractStatus.CANCELLED)

        with pytest.raises(ConflictError):
            await services.lifecycle.update_contract_status(
                contract_id, ContractStatus.PENDING_SIGNATURES
            )

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, services: Services, contract_data, clock):
        contract_id = await _create(services, contract_data)
        clock.advance(hours=1)

        contract = await services.lifecycle.update_contract_status(contract_id, ContractStatus.DRAFT)

        assert contract.updated_at == contract.created_at

    @pytest.mark.asyncio
    async def test_executed_after_full_signature(self, services: Services, contract_data):
        contract_id = await _create(services, contract_data)
        await services.lifecycle.record_signature(contract_id, SignerRole.ARTIST)
        await services.lifecycle.record_signature(contract_id, SignerRole.VENUE)

        contract = await services.lifecycle.update_contract_status(contract_id, ContractStatus.EXECUTED)

        assert contract.status is ContractStatus.EXECUTED

    @pytest.mark.asyncio
    async def test_signed_contract_cannot_expire(self, services: Services, contract_data):
        contract_id = await _create(services, contract_data)
        await services.lifecycle.record_signature(contract_id, SignerRole.ARTIST)
        contract = await services.lifecycle.record_signature(contract_id, SignerRole.VENUE)

        assert transition_error(contract, ContractStatus.EXPIRED) == "only unsigned contracts can expire"


class TestSignaturesAndExpiry:
    """Tests for record_signature, reschedule_event and expiry."""

    @pytest.mark.asyncio
    async def test_signatures_advance_status(self, services: Services, contract_data):
        contract_id = await _create(services, contract_data)

        first = await services.lifecycle.record_signature(contract_id, SignerRole.ARTIST)
        assert first.status is ContractStatus.PENDING_SIGNATURES
        assert first.signed_roles == {SignerRole.ARTIST}

        again = await services.lifecycle.record_signature(contract_id, SignerRole.ARTIST)
        assert again.status is ContractStatus.PENDING_SIGNATURES

        second = await services.lifecycle.record_signature(contract_id, SignerRole.VENUE)
        assert second.status is ContractStatus.SIGNED
        assert second.fully_signed

    @pytest.mark.asyncio
    async def test_reschedule_before_signing(self, services: Services, contract_data, clock):
        contract_id = await _create(services, contract_data)
        new_date = clock.now + timedelta(days=30)

        contract = await services.lifecycle.reschedule_event(contract_id, new_date)

        assert contract.event_date == new_date

    @pytest.mark.asyncio
    async def test_reschedule_after_signing_rejected(self, services: Services, contract_data, clock):
        contract_id = await _create(services, contract_data)
        await services.lifecycle.record_signature(contract_id, SignerRole.VENUE)

        with pytest.raises(ConflictError):
            await services.lifecycle.reschedule_event(contract_id, clock.now + timedelta(days=30))

    @pytest.mark.asyncio
    async def test_unsigned_contract_expires_after_event(self, services: Services, contract_data, clock):
        """Test an unsigned contract reads as expired once its event passes."""
        contract_id = await _create(services, contract_data)
        clock.advance(days=11)

        contract = await services.lifecycle.get_contract(contract_id)

        assert contract.status is ContractStatus.DRAFT
        assert services.lifecycle.effective_status(contract) is ContractStatus.EXPIRED
        with pytest.raises(ConflictError):
            await services.lifecycle.ensure_open_for_signature(contract_id)

    @pytest.mark.asyncio
    async def test_signed_contract_never_expires(self, services: Services, contract_data, clock):
        contract_id = await _create(services, contract_data)
        await services.lifecycle.record_signature(contract_id, SignerRole.ARTIST)
        await services.lifecycle.record_signature(contract_id, SignerRole.VENUE)
        clock.advance(days=30)

        contract = await services.lifecycle.get_contract(contract_id)

        assert services.lifecycle.effective_status(contract) is ContractStatus.SIGNED

    @pytest.mark.asyncio
    async def test_draft_without_event_date_never_expires(self, services: Services, contract_data, clock):
        contract_id = await _create(services, replace(contract_data, event_date=None))
        clock.advance(days=400)

        contract = await services.lifecycle.get_contract(contract_id)

        assert services.lifecycle.is_expired(contract) is False

    @pytest.mark.asyncio
    async def test_expire_overdue_contracts_persists(self, services: Services, contract_data, clock):
        overdue = await _create(services, contract_data)
        later = await _create(
            services, replace(contract_data, event_date=clock.now + timedelta(days=60))
        )
        clock.advance(days=11)

        expired = await services.lifecycle.expire_overdue_contracts()

        assert expired == [overdue]
        assert (await services.lifecycle.get_contract(overdue)).status is ContractStatus.EXPIRED
        assert (await services.lifecycle.get_contract(later)).status is ContractStatus.DRAFT
        assert await services.lifecycle.expire_overdue_contracts() == []


class TestContractSigningService:
    """Tests for the capture -> record -> notify workflow."""

    @pytest.mark.asyncio
    async def test_sign_records_role(self, services: Services, contract_data, signature_data):
        contract_id = await _create(services, contract_data)

        outcome = await services.signing.sign_contract(replace(signature_data, contract_id=contract_id))

        assert outcome.capture.success
        assert outcome.contract.status is ContractStatus.PENDING_SIGNATURES
        assert outcome.contract.signed_roles == {SignerRole.ARTIST}
        assert outcome.notification_sent is False

    @pytest.mark.asyncio
    async def test_sign_notifies_other_party(
        self, services: Services, contract_data, signature_data, booking_details, email_sender
    ):
        contract_id = await _create(services, contract_data)
        await services.booking_email.handle_booking_created(
            replace(booking_details, contract_id=contract_id)
        )
        email_sender.sent.clear()

        outcome = await services.signing.sign_contract(replace(signature_data, contract_id=contract_id))

        assert outcome.notification_sent is True
        assert email_sender.recipients() == ["venue@example.com"]
        assert email_sender.subjects() == ["Contract Signed: Summer Jazz Night"]
        assert outcome.capture.certificate_number in email_sender.sent[0][2]

    @pytest.mark.asyncio
    async def test_resubmitted_signature_notifies_once(
        self, services: Services, contract_data, signature_data, booking_details, email_sender
    ):
        """Test signing the same role twice sends a single completion email."""
        contract_id = await _create(services, contract_data)
        await services.booking_email.handle_booking_created(
            replace(booking_details, contract_id=contract_id)
        )
        email_sender.sent.clear()
        data = replace(signature_data, contract_id=contract_id)

        first = await services.signing.sign_contract(data)
        second = await services.signing.sign_contract(data)

        assert first.notification_sent is True
        assert second.notification_sent is False
        assert second.capture.certificate_number == first.capture.certificate_number
        assert second.contract.signed_roles == {SignerRole.ARTIST}
        assert email_sender.subjects() == ["Contract Signed: Summer Jazz Night"]

    @pytest.mark.asyncio
    async def test_both_parties_sign(self, services: Services, contract_data, signature_data):
        contract_id = await _create(services, contract_data)
        artist = replace(signature_data, contract_id=contract_id)
        venue = replace(
            artist, signer_role="venue", signer_name="Blue Note", signer_email="venue@example.com"
        )

        await services.signing.sign_contract(artist)
        outcome = await services.signing.sign_contract(venue)

        assert outcome.contract.status is ContractStatus.SIGNED

    @pytest.mark.asyncio
    async def test_invalid_signature_leaves_contract_untouched(
        self, services: Services, contract_data, signature_data: SignatureData
    ):
        contract_id = await _create(services, contract_data)

        outcome = await services.signing.sign_contract(
            replace(signature_data, contract_id=contract_id, signature_image="")
        )

        assert not outcome.capture.success
        assert outcome.contract is None
        contract = await services.lifecycle.get_contract(contract_id)
        assert contract.status is ContractStatus.DRAFT

    @pytest.mark.asyncio
    async def test_tampered_resubmission_not_recorded(
        self, services: Services, contract_data, signature_data
    ):
        contract_id = await _create(services, contract_data)
        data = replace(signature_data, contract_id=contract_id)
        await services.signing.sign_contract(data)

        outcome = await services.signing.sign_contract(
            replace(data, signature_image=data.signature_image + "A")
        )

        assert outcome.capture.tamper_detected is True
        assert outcome.contract is None

    @pytest.mark.asyncio
    async def test_unknown_contract_raises(self, services: Services, signature_data):
        with pytest.raises(NotFoundError):
            await services.signing.sign_contract(replace(signature_data, contract_id="CONTRACT-NOPE"))

    @pytest.mark.asyncio
    async def test_cancelled_contract_rejects_signature(
        self, services: Services, contract_data, signature_data
    ):
        contract_id = await _create(services, contract_data)
        await services.lifecycle.update_contract_status(contract_id, ContractStatus.CANCELLED)

        with pytest.raises(ConflictError):
            await services.signing.sign_contract(replace(signature_data, contract_id=contract_id))
