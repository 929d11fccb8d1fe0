"""
Recognition Adapter Module

This module wraps an AWS Rekognition face collection and exposes the two
operations the decision engine needs:

- enroll(image, name): index one face under the given name, return its face id
- match(image, threshold): find the best enrolled face at or above a threshold

It also provides the collection lifecycle calls used once at startup
(ensure_collection, list_faces).

Provider failures (network errors, throttling, bad credentials) are raised as
ProviderError so that callers can tell them apart from a genuine "no match".

Usage:
    from door_access.recognition import RecognitionAdapter, create_rekognition_client

    client = create_rekognition_client(region="eu-west-1")
    adapter = RecognitionAdapter(client, "smart-door-faces")
    adapter.ensure_collection()
    face_id = adapter.enroll(image_bytes, "alice")
    match = adapter.match(image_bytes, threshold=75.0)
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from door_access.errors import NoFaceDetected, ProviderError, ProviderUnavailable

# Setup logging
logger = logging.getLogger(__name__)

# Rekognition raises this when the probe image contains no detectable face
NO_FACE_ERROR_CODE = "InvalidParameterException"
COLLECTION_MISSING_ERROR_CODE = "ResourceNotFoundException"


def create_rekognition_client(region: Optional[str] = None) -> Any:
    """
    Create a boto3 Rekognition client.

    Credentials are resolved by boto3's default chain (environment variables
    AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY, shared config, instance role).

    Args:
        region: AWS region name, or None to use the default.

    Returns:
        A boto3 Rekognition client.
    """
    return boto3.client("rekognition", region_name=region)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


@dataclass(frozen=True)
class FaceMatch:
    """
    Best candidate returned by a collection search.

    Attributes:
        external_id: External image id of the matched face (the person's name).
        similarity: Provider similarity on the 0-100 scale.
        face_id: Provider face id of the matched face, if reported.
    """

    external_id: str
    similarity: float
    face_id: Optional[str] = None

    @property
    def confidence(self) -> float:
        """Similarity normalized to 0.0-1.0."""
        return self.similarity / 100.0


class RecognitionAdapter:
    """
    Domain-level view of one Rekognition collection.

    Attributes:
        client: boto3 Rekognition client (or any object with the same methods).
        collection_id: Collection that faces are indexed into and searched in.
    """

    def __init__(self, client: Any, collection_id: str):
        self.client = client
        self.collection_id = collection_id

    # ============================================================
    # Collection lifecycle (startup)
    # ============================================================

    def ensure_collection(self) -> bool:
        """
        Make sure the collection exists, creating it if necessary.

        Returns:
            True if the collection was created, False if it already existed.

        Raises:
            ProviderUnavailable: If the collection can be neither described nor created.
        """
        logger.info(f"Checking collection '{self.collection_id}'...")

        try:
            self.client.describe_collection(CollectionId=self.collection_id)
            logger.info(f"Collection '{self.collection_id}' exists")
            return False
        except ClientError as e:
            if _error_code(e) != COLLECTION_MISSING_ERROR_CODE:
                raise ProviderUnavailable(
                    f"Failed to describe collection '{self.collection_id}': {e}"
                ) from e
        except BotoCoreError as e:
            raise ProviderUnavailable(
                f"Failed to describe collection '{self.collection_id}': {e}"
            ) from e

        logger.info(f"Creating collection '{self.collection_id}'...")
        try:
            self.client.create_collection(CollectionId=self.collection_id)
        except (ClientError, BotoCoreError) as e:
            raise ProviderUnavailable(
                f"Failed to create collection '{self.collection_id}': {e}"
            ) from e

        logger.info(f"Created collection '{self.collection_id}'")
        return True

    def list_faces(self) -> List[Tuple[str, str]]:
        """
        List every face indexed in the collection.

        Follows NextToken pagination. Faces indexed without an external image
        id cannot be mapped to a name and are skipped.

        Returns:
            List of (face_id, external_id) pairs.

        Raises:
            ProviderUnavailable: If the collection cannot be listed.
        """
        faces = []
        next_token = None

        while True:
            kwargs = {"CollectionId": self.collection_id}
            if next_token:
                kwargs["NextToken"] = next_token

            try:
                response = self.client.list_faces(**kwargs)
            except (ClientError, BotoCoreError) as e:
                raise ProviderUnavailable(
                    f"Failed to list faces in '{self.collection_id}': {e}"
                ) from e

            for face in response.get("Faces") or []:
                face_id = face.get("FaceId")
                external_id = face.get("ExternalImageId")
                if face_id and external_id:
                    faces.append((face_id, external_id))
                else:
                    logger.debug(f"Skipping face without external id: {face_id}")

            next_token = response.get("NextToken")
            if not next_token:
                break

        return faces

    # ============================================================
    # Per-request operations
    # ============================================================

    def enroll(self, image: bytes, name: str) -> str:
        """
        Index the face in an image under the given name.

        At most one face is indexed, and low-quality detections are filtered
        out by the provider. The registry is not updated here.

        Args:
            image: Encoded image bytes (JPEG or PNG).
            name: Person's name, stored as the face's external image id.

        Returns:
            The face id assigned by the provider.

        Raises:
            NoFaceDetected: If the provider indexed no face.
            ProviderError: On transport or service failure.
        """
        logger.info(f"Adding person '{name}' to collection")

        try:
            response = self.client.index_faces(
                CollectionId=self.collection_id,
                Image={"Bytes": image},
                ExternalImageId=name,
                MaxFaces=1,
                QualityFilter="AUTO",
            )
        except (ClientError, BotoCoreError) as e:
            raise ProviderError(f"Face indexing failed: {e}") from e

        for record in response.get("FaceRecords") or []:
            face_id = (record.get("Face") or {}).get("FaceId")
            if face_id:
                return face_id

        unindexed = response.get("UnindexedFaces") or []
        if unindexed:
            reasons = sorted({r for face in unindexed for r in face.get("Reasons", [])})
            logger.info(f"Provider rejected {len(unindexed)} face(s): {', '.join(reasons)}")

        raise NoFaceDetected("No face detected in image")

    def match(self, image: bytes, threshold: float) -> Optional[FaceMatch]:
        """
        Search the collection for the face in an image.

        Args:
            image: Encoded image bytes.
            threshold: Minimum similarity on the provider's 0-100 scale.

        Returns:
            The best FaceMatch at or above threshold, or None if there is none.

        Raises:
            ValueError: If threshold is outside 0-100.
            ProviderError: On transport or service failure.
        """
        if not 0.0 <= threshold <= 100.0:
            raise ValueError(f"threshold must be within 0-100, got {threshold}")

        logger.info("Attempting face recognition...")

        try:
            response = self.client.search_faces_by_image(
                CollectionId=self.collection_id,
                Image={"Bytes": image},
                MaxFaces=1,
                FaceMatchThreshold=float(threshold),
            )
        except ClientError as e:
            if _error_code(e) == NO_FACE_ERROR_CODE:
                logger.info(f"No face found in probe image: {e}")
                return None
            raise ProviderError(f"Face search failed: {e}") from e
        except BotoCoreError as e:
            raise ProviderError(f"Face search failed: {e}") from e

        for face_match in response.get("FaceMatches") or []:
            face = face_match.get("Face") or {}
            similarity = face_match.get("Similarity")
            external_id = face.get("ExternalImageId")

            if similarity is None or not external_id:
                continue
            if similarity < threshold:
                continue

            return FaceMatch(
                external_id=external_id,
                similarity=float(similarity),
                face_id=face.get("FaceId"),
            )

        return None
