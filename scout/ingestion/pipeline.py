"""Collector -> extraction gateway -> intake filter, one item at a time."""
import logging
from datetime import date, timedelta
from typing import Optional

from scout.core.config import settings
from scout.core.data_types import IntakeResult, RawItem, SourceDescriptor
from scout.core.models import IntakeOutcome
from scout.core.utils import parse_date
from scout.extraction.gateway import ExtractionGateway
from scout.ingestion.intake import CandidateIntakeFilter

logger = logging.getLogger(__name__)


class IngestPipeline:
    def __init__(
        self,
        gateway: ExtractionGateway,
        intake: CandidateIntakeFilter,
        min_text_length: Optional[int] = None,
    ):
        self.gateway = gateway
        self.intake = intake
        self.min_text_length = settings.collector_min_text_length if min_text_length is None else min_text_length

    async def process_item(
        self,
        item: RawItem,
        descriptor: SourceDescriptor,
        min_text_length: Optional[int] = None,
        max_age_days: Optional[int] = None,
    ) -> IntakeResult:
        """
        Run one raw item through extraction and intake.
        A negative classification is NO_SIGNAL, not an error.
        """
        threshold = self.min_text_length if min_text_length is None else min_text_length
        if len((item.text or "").strip()) < threshold:
            logger.debug(f"Skipping short item from {item.source_url}")
            return IntakeResult(IntakeOutcome.SKIPPED, reason="text_too_short")

        result = await self.gateway.validate_and_extract(item.text, date_context=item.published_at)
        if not result.is_valid:
            logger.debug(f"No funding signal in {item.source_url}: {result.reason}")
            return IntakeResult(IntakeOutcome.NO_SIGNAL, reason=result.reason)

        if max_age_days is not None:
            announced = parse_date(result.data.date_announced)
            if announced and announced < date.today() - timedelta(days=max_age_days):
                return IntakeResult(IntakeOutcome.REJECTED, reason="stale_announcement")

        return await self.intake.submit(result.data, item, descriptor)
