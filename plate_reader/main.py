"""
FastAPI application for reading Mercosul plates from uploaded vehicle images.

Uploaded images are stored on disk and served back under ``/uploads``. The
text found in each image is handed to the plate extractor and the result is
returned as JSON.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import cv2
import numpy as np
from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from .config import Settings, configure_logging
from .extractor import extract_plate
from .ocr import TextReader
from .storage import UPLOADS_URL_PREFIX, UploadStorage

logger = logging.getLogger(__name__)

NO_TEXT_MESSAGE = "No text was detected in the image."
NO_FILE_MESSAGE = "No file uploaded."
OCR_FAILURE_MESSAGE = "Error processing image with the text detection service."


def _image_from_upload(data: bytes) -> np.ndarray:
    """Decode raw bytes from an uploaded image."""
    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Failed to decode image. Ensure the file is a valid JPEG or PNG.")
    return image


class UploadResponse(BaseModel):
    plate: Optional[str] = Field(None, description="Mercosul plate (LLLNLNN) or null")
    message: str = Field(..., description="Human-readable status of the recognition")
    image_url: Optional[str] = Field(
        None, description="Path under which the stored upload can be retrieved"
    )


class PlateRecognitionService:
    """Stores an upload, reads its text and extracts the plate."""

    def __init__(self, reader, storage: UploadStorage) -> None:
        self.reader = reader
        self.storage = storage

    def recognize(self, data: bytes, filename: str | None = None) -> UploadResponse:
        image = _image_from_upload(data)
        stored = self.storage.save(data, filename)
        image_url = self.storage.url_for(stored)

        try:
            text = self.reader.read_text(image)
        except Exception as exc:
            logger.exception("Text detection failed for %s", stored)
            raise RuntimeError(f"Text detection failed: {exc}") from exc

        if not text or not text.strip():
            return UploadResponse(plate=None, message=NO_TEXT_MESSAGE, image_url=image_url)

        logger.info("Text detected by OCR:\n%s", text)
        result = extract_plate(text)
        return UploadResponse(plate=result.plate, message=result.message, image_url=image_url)


_service_lock = threading.Lock()


def get_service(request: Request) -> PlateRecognitionService:
    """Return the application's service, building it on first use."""
    state = request.app.state
    if state.service is None:
        with _service_lock:
            if state.service is None:
                settings: Settings = state.settings
                state.service = PlateRecognitionService(
                    reader=TextReader(settings.ocr_languages, gpu=settings.ocr_gpu),
                    storage=UploadStorage(settings.upload_dir),
                )
    return state.service


router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def landing_page() -> str:
    """Simple upload form for manual testing."""
    return """
    <html>
        <head>
            <title>Mercosul Plate Reader</title>
            <style>
                body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif; margin: 2rem; background: #f7f7f9; color: #1f2933; }
                form, .result-card { margin-top: 1rem; padding: 1rem; background: white; border-radius: 8px; box-shadow: 0 1px 3px rgba(15,23,42,0.1); }
                button { background: #2563eb; color: white; border: none; padding: 0.65rem 1.2rem; border-radius: 6px; cursor: pointer; font-size: 1rem; }
                .plate { font-size: 2rem; letter-spacing: 0.2rem; font-weight: bold; }
                .muted { color: #64748b; font-size: 0.9rem; }
                img { max-width: 100%; border-radius: 8px; border: 1px solid #cbd5f5; }
                pre { background: #0f172a; color: #f8fafc; padding: 1rem; border-radius: 8px; overflow-x: auto; }
            </style>
        </head>
        <body>
            <h1>Mercosul Plate Reader</h1>
            <p class="muted">Upload a vehicle photo. Plates in the LLLNLNN format are read from the detected text.</p>
            <form id="upload-form">
                <input type="file" name="image" accept="image/png, image/jpeg" required />
                <button type="submit">Read Plate</button>
                <span id="status" class="muted"></span>
            </form>

            <div id="results" class="result-card" style="display: none;">
                <p class="plate" id="plate"></p>
                <p class="muted" id="message"></p>
                <img id="uploaded-image" alt="Uploaded image"/>
                <pre id="json-output"></pre>
            </div>

            <script>
                const form = document.getElementById("upload-form");
                const statusEl = document.getElementById("status");
                const resultsEl = document.getElementById("results");

                form.addEventListener("submit", async (ev) => {
                    ev.preventDefault();
                    const formData = new FormData();
                    formData.append("image", form.querySelector("input[type=file]").files[0]);
                    resultsEl.style.display = "none";
                    statusEl.textContent = "Uploading...";

                    try {
                        const response = await fetch("/upload", { method: "POST", body: formData });
                        const data = await response.json().catch(() => ({}));
                        if (!response.ok) {
                            throw new Error(data.detail || "Request failed");
                        }
                        statusEl.textContent = "";
                        document.getElementById("plate").textContent = data.plate ?? "—";
                        document.getElementById("message").textContent = data.message;
                        document.getElementById("uploaded-image").src = data.image_url || "";
                        document.getElementById("json-output").textContent = JSON.stringify(data, null, 2);
                        resultsEl.style.display = "block";
                    } catch (error) {
                        statusEl.textContent = `Error: ${error.message}`;
                    }
                });
            </script>
        </body>
    </html>
    """


@router.post("/upload", response_model=UploadResponse)
def upload(
    image: Optional[UploadFile] = File(None),
    service: PlateRecognitionService = Depends(get_service),
) -> UploadResponse:
    """
    Store an uploaded image and read the Mercosul plate in it.

    Declared without ``async`` so OCR runs in the threadpool, off the event loop.
    """
    if image is None:
        logger.error("Upload request without a file")
        raise HTTPException(status_code=400, detail=NO_FILE_MESSAGE)

    data = image.file.read()
    if not data:
        logger.error("Upload request with an empty file")
        raise HTTPException(status_code=400, detail=NO_FILE_MESSAGE)

    logger.info("Image received: %s (%d bytes)", image.filename, len(data))

    try:
        return service.recognize(data, image.filename)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=500, detail=OCR_FAILURE_MESSAGE) from exc


def create_app(
    settings: Settings | None = None,
    service: PlateRecognitionService | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    # StaticFiles refuses to serve from a directory that does not exist.
    UploadStorage(settings.upload_dir).ensure_root()

    app = FastAPI(
        title="Mercosul Plate Reader",
        version="0.1.0",
        description="Reads Mercosul license plates (LLLNLNN) from uploaded vehicle images.",
    )
    app.state.settings = settings
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    app.mount(
        UPLOADS_URL_PREFIX,
        StaticFiles(directory=str(settings.upload_dir)),
        name="uploads",
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    logger.info("Plate reader backend running at http://%s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, reload=False)
