from types import SimpleNamespace

import pytest

from community_calendar.services.ocr_service import (
    GoogleVisionOCR,
    NullOCR,
    create_ocr_service,
)


class FakeVisionClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []
        self.closed = False
        self.transport = SimpleNamespace(close=self._close)

    async def _close(self):
        self.closed = True

    async def batch_annotate_images(self, requests):
        self.requests.extend(requests)
        if self.error:
            raise self.error
        return self.response


def annotated(text: str = "", error_message: str = ""):
    annotations = [SimpleNamespace(description=text)] if text else []
    return SimpleNamespace(
        responses=[SimpleNamespace(error=SimpleNamespace(message=error_message), text_annotations=annotations)]
    )


@pytest.mark.asyncio
async def test_text_detection_result_is_returned():
    client = FakeVisionClient(annotated("QUEER CRAFT NIGHT\nJUNE 14"))
    ocr = GoogleVisionOCR(client=client)

    assert await ocr.extract_text("https://cdn.test/flyer.jpg") == "QUEER CRAFT NIGHT\nJUNE 14"
    assert client.requests[0].image.source.image_uri == "https://cdn.test/flyer.jpg"

    await ocr.close()
    assert client.closed


@pytest.mark.asyncio
async def test_failures_read_as_empty_text():
    assert await GoogleVisionOCR(client=FakeVisionClient(error=RuntimeError("quota"))).extract_text("u") == ""
    assert await GoogleVisionOCR(client=FakeVisionClient(annotated(error_message="bad image"))).extract_text("u") == ""
    assert await GoogleVisionOCR(client=FakeVisionClient(annotated())).extract_text("u") == ""
    assert await GoogleVisionOCR(client=FakeVisionClient(annotated("x"))).extract_text("") == ""


@pytest.mark.asyncio
async def test_disabled_ocr():
    ocr = create_ocr_service(False)
    assert isinstance(ocr, NullOCR)
    assert await ocr.extract_text("https://cdn.test/flyer.jpg") == ""
    assert isinstance(create_ocr_service(True), GoogleVisionOCR)
