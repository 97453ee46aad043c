"""
Collector registry and source configuration.

Source descriptors live in config/sources.yaml. Each entry's `type` picks
the collector implementation from COLLECTOR_REGISTRY.

Usage:
    descriptors = load_source_descriptors()
    collectors = build_collectors(descriptors, pipeline)
"""
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from scout.collectors.base import Collector
from scout.collectors.gallery import GalleryCollector
from scout.collectors.hackernews import HackerNewsCollector
from scout.collectors.producthunt import ProductHuntCollector
from scout.collectors.reddit import RedditCollector
from scout.collectors.rss import RssCollector
from scout.collectors.serp import SerpCollector
from scout.core.config import settings
from scout.core.data_types import SourceDescriptor
from scout.core.models import SourceType, TrustLevel

logger = logging.getLogger(__name__)

CollectorFactory = Callable[[SourceDescriptor, Any], Collector]

COLLECTOR_REGISTRY: Dict[SourceType, CollectorFactory] = {
    SourceType.RSS: RssCollector,
    SourceType.HACKERNEWS: HackerNewsCollector,
    SourceType.REDDIT: RedditCollector,
    SourceType.PRODUCTHUNT: ProductHuntCollector,
    SourceType.GALLERY: GalleryCollector,
    SourceType.SERP: SerpCollector,
}


class SourceEntry(BaseModel):
    """Schema for one entry in sources.yaml."""
    name: str
    type: SourceType
    endpoint: str = ""
    enabled: bool = True
    reliability: float = Field(default=0.8, ge=0.0, le=1.0)
    trust: TrustLevel = TrustLevel.HIGH
    options: Dict[str, Any] = Field(default_factory=dict)

    def to_descriptor(self) -> SourceDescriptor:
        return SourceDescriptor(
            name=self.name,
            type=self.type,
            endpoint=self.endpoint,
            enabled=self.enabled,
            reliability=self.reliability,
            trust=self.trust,
            options=dict(self.options),
        )


class SourcesFile(BaseModel):
    sources: List[SourceEntry] = Field(default_factory=list)


def load_source_descriptors(path: Optional[Path] = None) -> List[SourceDescriptor]:
    """Load and validate every descriptor (enabled or not) from YAML."""
    path = Path(path or settings.sources_file)
    if not path.exists():
        raise FileNotFoundError(f"Sources config not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = SourcesFile.model_validate(raw)
    descriptors = [entry.to_descriptor() for entry in config.sources]
    logger.info(f"Loaded {len(descriptors)} sources from {path}")
    return descriptors


def build_collectors(
    descriptors: List[SourceDescriptor],
    pipeline,
    registry: Optional[Dict[SourceType, CollectorFactory]] = None,
) -> List[Collector]:
    """Instantiate one collector per enabled descriptor."""
    registry = registry or COLLECTOR_REGISTRY
    collectors = []
    for descriptor in descriptors:
        if not descriptor.enabled:
            continue
        factory = registry.get(descriptor.type)
        if factory is None:
            logger.warning(f"No collector registered for type '{descriptor.type}' ({descriptor.name})")
            continue
        collectors.append(factory(descriptor, pipeline))
    return collectors
