"""
Face verification capability boundary.

Admin face approval compares a probe photo against the admin's stored
reference encoding. No vision model ships with this service: the default
verifier refuses to produce encodings or scores, and the endpoints that need
one answer 501 until a real implementation is configured.
"""

from typing import Protocol, runtime_checkable

from core.exceptions import FaceVerificationUnavailable, FaceVerifierError


@runtime_checkable
class FaceVerifier(Protocol):
    """A vision backend able to encode and compare faces."""

    def encode(self, image: bytes) -> str:
        """Produce a reference encoding for the face in an image."""
        ...

    def verify(self, probe_image: bytes, reference_encoding: str) -> float:
        """Confidence in [0, 1] that the probe shows the reference face."""
        ...


class UnavailableFaceVerifier:
    """Placeholder used until a real face verifier is configured."""

    def encode(self, image: bytes) -> str:
        raise FaceVerificationUnavailable("No face verification backend configured")

    def verify(self, probe_image: bytes, reference_encoding: str) -> float:
        raise FaceVerificationUnavailable("No face verification backend configured")


def is_match(confidence: float, threshold: float) -> bool:
    """Whether a verifier confidence clears the configured threshold."""
    if not 0.0 <= confidence <= 1.0:
        raise FaceVerifierError(f"Face verifier returned out-of-range confidence {confidence}")
    return confidence >= threshold
