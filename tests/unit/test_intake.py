"""
Unit tests for the candidate intake filter and the ingest pipeline.
"""
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select

from scout.core.data_types import ExtractionResult, RawItem
from scout.core.errors import ValidationRejection
from scout.core.models import IntakeOutcome, ValidationStatus
from scout.ingestion.database import PendingStartupModel, StartupModel
from scout.ingestion.intake import CandidateIntakeFilter
from scout.ingestion.pipeline import IngestPipeline


async def count(session_factory, model):
    async with session_factory() as session:
        return (await session.execute(select(func.count(model.id)))).scalar_one()


@pytest.fixture
def queue():
    q = MagicMock()
    q.enqueue = MagicMock()
    return q


@pytest.fixture
def intake(session_factory, queue):
    return CandidateIntakeFilter(session_factory=session_factory, enrichment_queue=queue)


class TestScreen:

    @pytest.mark.parametrize("overrides,reason", [
        ({"name": None}, "missing_name_or_funding"),
        ({"name": "  "}, "missing_name_or_funding"),
        ({"funding_amount": None}, "missing_name_or_funding"),
        ({"funding_amount": "null"}, "null_funding"),
        ({"funding_amount": "Unknown amount"}, "null_funding"),
        ({"founders": ["A", "B", "C", "D", "E"]}, "too_many_founders"),
        ({"name": "Stealth Startup"}, "placeholder_name"),
        ({"name": "The Startup"}, "placeholder_name"),
    ])
    def test_rejections(self, acme_fields, overrides, reason):
        with pytest.raises(ValidationRejection) as exc:
            CandidateIntakeFilter.screen(acme_fields(**overrides))
        assert exc.value.reason == reason

    def test_rules_short_circuit_in_order(self, acme_fields):
        fields = acme_fields(funding_amount="null", founders=["A", "B", "C", "D", "E"], name="Stealth")
        assert CandidateIntakeFilter.should_accept(fields) == (False, "null_funding")

    def test_four_founders_allowed(self, acme_fields):
        assert CandidateIntakeFilter.should_accept(acme_fields(founders=["A", "B", "C", "D"])) == (True, None)


class TestSubmitHighTrust:

    async def test_creates_canonical_and_enqueues(self, intake, queue, session_factory, acme_fields, raw_item, high_trust_source):
        result = await intake.submit(acme_fields(), raw_item, high_trust_source)

        assert result.outcome == IntakeOutcome.CREATED_CANONICAL
        queue.enqueue.assert_called_once_with(result.record_id)

        async with session_factory() as session:
            record = await session.get(StartupModel, result.record_id)
        assert record.name == "Acme"
        assert record.confidence_score == 0.95
        assert record.validation_status == ValidationStatus.VALIDATED
        assert record.funding_amount_num == 5_000_000
        assert record.founders_text == "jane doe"
        assert record.source_name == "techcrunch"

    async def test_resubmission_is_idempotent(self, intake, queue, session_factory, acme_fields, raw_item, high_trust_source):
        first = await intake.submit(acme_fields(), raw_item, high_trust_source)
        second = await intake.submit(acme_fields(), raw_item, high_trust_source)

        assert second.outcome == IntakeOutcome.DUPLICATE
        assert second.record_id == first.record_id
        assert await count(session_factory, StartupModel) == 1
        assert queue.enqueue.call_count == 1

    async def test_same_url_different_name_is_duplicate(self, intake, session_factory, acme_fields, raw_item, high_trust_source):
        await intake.submit(acme_fields(), raw_item, high_trust_source)
        result = await intake.submit(acme_fields(name="Acme Robotics"), raw_item, high_trust_source)
        assert result.outcome == IntakeOutcome.DUPLICATE

    async def test_duplicate_clears_revalidation_flag(self, intake, session_factory, acme_fields, raw_item, high_trust_source):
        created = await intake.submit(acme_fields(), raw_item, high_trust_source)
        async with session_factory() as session:
            record = await session.get(StartupModel, created.record_id)
            record.needs_revalidation = True
            await session.commit()

        await intake.submit(acme_fields(), raw_item, high_trust_source)

        async with session_factory() as session:
            record = await session.get(StartupModel, created.record_id)
        assert record.needs_revalidation is False

    async def test_rejected_candidate_writes_nothing(self, intake, queue, session_factory, acme_fields, raw_item, high_trust_source):
        result = await intake.submit(acme_fields(funding_amount="n/a"), raw_item, high_trust_source)

        assert result.outcome == IntakeOutcome.REJECTED
        assert await count(session_factory, StartupModel) == 0
        queue.enqueue.assert_not_called()


class TestSubmitLowTrust:

    async def test_creates_pending_with_one_evidence(self, intake, queue, session_factory, acme_fields, raw_item, low_trust_source):
        result = await intake.submit(acme_fields(), raw_item, low_trust_source)

        assert result.outcome == IntakeOutcome.CREATED_PENDING
        queue.enqueue.assert_not_called()
        assert await count(session_factory, StartupModel) == 0

        async with session_factory() as session:
            pending = await session.get(PendingStartupModel, result.record_id)
        evidence = pending.get_evidence()
        assert len(evidence) == 1
        assert evidence[0].source_name == "serp"
        assert evidence[0].confidence == 0.85
        assert pending.aggregate_confidence == pytest.approx(0.5)
        assert pending.validation_status == ValidationStatus.PENDING

    async def test_same_observation_not_pooled_twice(self, intake, session_factory, acme_fields, raw_item, low_trust_source):
        await intake.submit(acme_fields(), raw_item, low_trust_source)
        second = await intake.submit(acme_fields(), raw_item, low_trust_source)

        assert second.outcome == IntakeOutcome.DUPLICATE
        assert await count(session_factory, PendingStartupModel) == 1

    async def test_second_source_adds_candidate(self, intake, session_factory, acme_fields, raw_item, low_trust_source):
        await intake.submit(acme_fields(), raw_item, low_trust_source)
        other = RawItem(text=raw_item.text, source_url="https://venturebeat.com/acme", source_name="serp")
        result = await intake.submit(acme_fields(name="ACME, Inc."), other, low_trust_source)

        assert result.outcome == IntakeOutcome.CREATED_PENDING
        assert await count(session_factory, PendingStartupModel) == 2


class TestIngestPipeline:

    async def test_short_text_skipped(self, stub_gateway, intake, high_trust_source):
        pipeline = IngestPipeline(stub_gateway, intake, min_text_length=100)
        item = RawItem(text="too short", source_url="https://x.example/1", source_name="techcrunch")

        result = await pipeline.process_item(item, high_trust_source)

        assert result.outcome == IntakeOutcome.SKIPPED
        stub_gateway.validate_and_extract.assert_not_called()

    async def test_no_signal_leaves_store_unchanged(self, stub_gateway, intake, session_factory, raw_item, high_trust_source):
        stub_gateway.validate_and_extract = AsyncMock(return_value=ExtractionResult.invalid("product launch"))
        pipeline = IngestPipeline(stub_gateway, intake)

        result = await pipeline.process_item(raw_item, high_trust_source)

        assert result.outcome == IntakeOutcome.NO_SIGNAL
        assert await count(session_factory, StartupModel) == 0
        assert await count(session_factory, PendingStartupModel) == 0

    async def test_published_date_passed_as_context(self, stub_gateway, intake, raw_item, high_trust_source):
        pipeline = IngestPipeline(stub_gateway, intake)
        await pipeline.process_item(raw_item, high_trust_source)
        stub_gateway.validate_and_extract.assert_awaited_once_with(raw_item.text, date_context=raw_item.published_at)

    async def test_stale_announcement_rejected(self, stub_gateway, intake, acme_fields, raw_item, low_trust_source):
        old = (date.today() - timedelta(days=30)).isoformat()
        stub_gateway.validate_and_extract = AsyncMock(return_value=ExtractionResult.valid(acme_fields(date_announced=old)))
        pipeline = IngestPipeline(stub_gateway, intake)

        result = await pipeline.process_item(raw_item, low_trust_source, max_age_days=5)

        assert result.outcome == IntakeOutcome.REJECTED
        assert result.reason == "stale_announcement"

    async def test_valid_item_reaches_intake(self, stub_gateway, intake, queue, raw_item, high_trust_source):
        pipeline = IngestPipeline(stub_gateway, intake)
        result = await pipeline.process_item(raw_item, high_trust_source)

        assert result.outcome == IntakeOutcome.CREATED_CANONICAL
        queue.enqueue.assert_called_once()
