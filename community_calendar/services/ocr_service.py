"""
OCR Service - text recognition on event flyers.

``extract_text`` never raises: any failure (bad URL, quota, credentials)
yields an empty string and the post is judged on its caption alone.
"""

from abc import ABC, abstractmethod

from google.cloud import vision

from community_calendar.utils.logger import setup_logger

logger = setup_logger("ocr_service")


class OCRService(ABC):
    @abstractmethod
    async def extract_text(self, image_url: str) -> str:
        """Return the text visible in the image, or "" on any failure."""

    async def close(self):
        return


class NullOCR(OCRService):
    """Used when OCR is disabled or its client could not be created."""

    async def extract_text(self, image_url: str) -> str:
        return ""


class GoogleVisionOCR(OCRService):
    """
    Google Cloud Vision ``TEXT_DETECTION`` over remote image URLs.

    Credentials come from the usual Application Default Credentials lookup
    (``GOOGLE_APPLICATION_CREDENTIALS``).
    """

    def __init__(self, client: vision.ImageAnnotatorAsyncClient | None = None):
        self._client = client

    def _get_client(self) -> vision.ImageAnnotatorAsyncClient:
        if self._client is None:
            self._client = vision.ImageAnnotatorAsyncClient()
            logger.info("Google Vision API client initialized")
        return self._client

    async def extract_text(self, image_url: str) -> str:
        if not image_url:
            return ""
        try:
            request = vision.AnnotateImageRequest(
                image=vision.Image(source=vision.ImageSource(image_uri=image_url)),
                features=[vision.Feature(type_=vision.Feature.Type.TEXT_DETECTION)],
            )
            response = await self._get_client().batch_annotate_images(requests=[request])
        except Exception as e:
            logger.warning(f"OCR request failed for {image_url[:80]}: {type(e).__name__}: {e}")
            return ""

        if not response.responses:
            return ""
        result = response.responses[0]
        if result.error.message:
            logger.warning(f"Vision API error for {image_url[:80]}: {result.error.message}")
            return ""
        if not result.text_annotations:
            return ""

        text = result.text_annotations[0].description or ""
        logger.debug(f"Vision API extracted {len(text)} characters from {image_url[:80]}")
        return text

    async def close(self):
        if self._client is None:
            return
        try:
            await self._client.transport.close()
        except Exception as e:
            logger.warning(f"Error closing Google Vision client: {e}")


def create_ocr_service(enabled: bool) -> OCRService:
    if not enabled:
        logger.info("OCR disabled; flyers will not be read")
        return NullOCR()
    return GoogleVisionOCR()
