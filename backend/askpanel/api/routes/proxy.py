"""Answering proxy routes: /ask and /ask-image backed by OpenAI."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

import askpanel.core.config as config_module
from askpanel.api.deps import limiter
from askpanel.core.errors import RemoteError, ValidationError
from askpanel.services.answer_client import AnswerClient, OpenAIAnswerClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proxy"])


class AskRequest(BaseModel):
    text: str = ""


class AskImageRequest(BaseModel):
    url: str = ""


class AnswerResponse(BaseModel):
    answer: str


def get_openai_client() -> AnswerClient:
    return OpenAIAnswerClient()


@router.post("/ask", response_model=AnswerResponse)
@limiter.limit("30/minute")
async def ask(request: Request, body: AskRequest, client: AnswerClient = Depends(get_openai_client)):
    """Answer a text question."""
    text = body.text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Missing text")
    if len(text) > config_module.settings.text_max_chars:
        raise HTTPException(status_code=400, detail="Text too long")

    try:
        answer = await client.answer_text(text)
    except RemoteError as e:
        logger.warning("Text answer failed: %s", e.message)
        raise HTTPException(status_code=500, detail=e.message)

    return AnswerResponse(answer=answer or "No answer")


@router.post("/ask-image", response_model=AnswerResponse)
@limiter.limit("30/minute")
async def ask_image(request: Request, body: AskImageRequest, client: AnswerClient = Depends(get_openai_client)):
    """Describe an image fetched from an http(s) URL."""
    url = body.url.strip()
    if not url:
        raise HTTPException(status_code=400, detail="Missing url")

    try:
        answer = await client.answer_image(url)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RemoteError as e:
        logger.warning("Image answer failed: %s", e.message)
        raise HTTPException(status_code=500, detail=e.message)

    return AnswerResponse(answer=answer or "No answer")
