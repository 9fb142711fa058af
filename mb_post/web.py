from __future__ import annotations

from typing import List, Optional, Union

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from .details import GeneratedPosts, ProductDetails
from .encoder import encode_image, encode_images
from .errors import NO_IMAGE_MESSAGE, EncodingError, GenerationError, InputError
from .orchestrator import PostOrchestrator


def _chosen_files(parts: Optional[List[Union[UploadFile, str]]]) -> list[UploadFile]:
    # An empty file input still submits a part, without a filename.
    return [p for p in parts or [] if isinstance(p, UploadFile) and p.filename]


async def _close_all(uploads: list[UploadFile]) -> None:
    for upload in uploads:
        await upload.close()


def create_app(orchestrator: PostOrchestrator) -> FastAPI:
    app = FastAPI(
        title="MB Post API",
        description="Captions and a square promotional image from product photos.",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/api/recognize-product")
    async def recognize_product(image: UploadFile = File(...)):
        """Suggest a product name from one photo. Always answers 200."""
        try:
            part = await encode_image(image)
        except EncodingError as e:
            if orchestrator.logger is not None:
                orchestrator.logger.exception("product_recognition_skipped", exc=e, level="WARN")
            return {"product_name": ""}
        finally:
            await image.close()

        name = await orchestrator.recognize_product([part])
        return {"product_name": name}

    @app.post("/api/generate-posts", response_model=GeneratedPosts)
    async def generate_posts(
        images: Optional[List[Union[UploadFile, str]]] = File(None),
        logo: Optional[UploadFile] = File(None),
        product_name: str = Form(""),
        price: str = Form(""),
        target_audience: str = Form(""),
        promotion: str = Form(""),
        style: str = Form(""),
    ):
        """
        Run one generation cycle.

        - 400 when no product image is sent or an upload is not a readable image
        - 502 when caption generation fails
        """
        chosen = _chosen_files(images)
        uploads = [p for p in images or [] if isinstance(p, UploadFile)]
        if logo is not None:
            uploads.append(logo)

        try:
            if not chosen:
                raise HTTPException(status_code=400, detail=NO_IMAGE_MESSAGE)

            try:
                parts = await encode_images(chosen)
                has_logo = logo is not None and bool(logo.filename)
                logo_part = await encode_image(logo) if has_logo else None
            except EncodingError as e:
                raise HTTPException(status_code=400, detail=str(e)) from e

            details = ProductDetails(
                product_name=product_name,
                price=price,
                target_audience=target_audience,
                promotion=promotion,
                style=style,
            )

            try:
                return await orchestrator.generate_all_posts(parts, logo_part, details)
            except InputError as e:
                raise HTTPException(status_code=400, detail=str(e)) from e
            except GenerationError as e:
                raise HTTPException(status_code=502, detail=str(e)) from e
        finally:
            await _close_all(uploads)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app
