"""Subject classification behind a fingerprint cache"""

from typing import Optional

from thought_gateway.domain.fingerprint_cache import FingerprintCache, fingerprint
from thought_gateway.domain.labels import BLOCKED_LABELS, is_valid_label, normalize_label
from thought_gateway.domain.models import ClassificationResult
from thought_gateway.infrastructure.observability.metrics import fingerprint_cache_counter


def interpret_label(raw_label: str) -> ClassificationResult:
    """Map a raw classifier label to a usable bank label or a rejection reason"""
    if not raw_label or raw_label == "other":
        return ClassificationResult(ok=False, reason="not_detected")

    label = normalize_label(raw_label)
    if not is_valid_label(label) or label in BLOCKED_LABELS:
        return ClassificationResult(ok=False, reason="invalid_label")
    return ClassificationResult(ok=True, label=label)


class SubjectClassifier:
    """
    Classifies images, reusing recent answers for identical payloads.

    `client` must provide `async classify_subject(image) -> str`.
    """

    def __init__(self, client, cache: FingerprintCache, ttl: Optional[float] = None):
        self.client = client
        self.cache = cache
        self.ttl = ttl

    async def classify(self, image_data_url: str) -> ClassificationResult:
        key = fingerprint(image_data_url)
        cached = self.cache.get(key)
        if cached is not None:
            fingerprint_cache_counter.labels(result="hit").inc()
            return cached

        fingerprint_cache_counter.labels(result="miss").inc()
        result = interpret_label(await self.client.classify_subject(image_data_url))
        self.cache.set(key, result, self.ttl)
        return result
