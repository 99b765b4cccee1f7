"""Unit tests for cached subject classification"""

import pytest
from thought_gateway.domain.classification import SubjectClassifier, interpret_label
from thought_gateway.domain.fingerprint_cache import FingerprintCache
from tests.fakes import FakeClassificationClient


IMAGE = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


@pytest.mark.parametrize(
    "raw, ok, label, reason",
    [
        ("dog", True, "dog", None),
        ("Kitten", True, "cat", None),
        ("other", False, None, "not_detected"),
        ("", False, None, "not_detected"),
        ("pet", False, None, "invalid_label"),
        ("t-rex", False, None, "invalid_label"),
    ],
)
def test_interpret_label(raw, ok, label, reason):
    result = interpret_label(raw)
    assert (result.ok, result.label, result.reason) == (ok, label, reason)


async def test_identical_image_served_from_cache():
    """Test a repeated payload skips the classifier"""
    client = FakeClassificationClient(label="parakeet")
    classifier = SubjectClassifier(client, FingerprintCache(capacity=10, default_ttl=60))

    first = await classifier.classify(IMAGE)
    second = await classifier.classify(IMAGE)

    assert first.label == "parrot"
    assert second == first
    assert client.classify_calls == 1


async def test_different_images_each_classified():
    client = FakeClassificationClient()
    classifier = SubjectClassifier(client, FingerprintCache(capacity=10, default_ttl=60))

    await classifier.classify(IMAGE)
    await classifier.classify(IMAGE + "AA")

    assert client.classify_calls == 2


async def test_rejections_are_cached_too():
    client = FakeClassificationClient(label="other")
    classifier = SubjectClassifier(client, FingerprintCache(capacity=10, default_ttl=60))

    assert (await classifier.classify(IMAGE)).reason == "not_detected"
    assert (await classifier.classify(IMAGE)).reason == "not_detected"
    assert client.classify_calls == 1
