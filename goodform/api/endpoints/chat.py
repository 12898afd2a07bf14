import logging
from typing import List

import openai
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from goodform import config, crud, schemas
from goodform.api.deps import get_db_session, verify_admin_token
from goodform.api.endpoints.forms import get_form_or_404
from goodform.chat_agent import ChatAgent, describe_ai_error, get_ai_client

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/forms/{form_id}/chat", response_model=schemas.ChatResponse)
async def chat_with_agent(
    form_id: str,
    request_data: schemas.ChatRequest,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    """
    Nimmt eine Nachricht entgegen, lässt das Modell ggf. Werkzeuge aufrufen
    (Antworten analysieren, Diagramme anlegen/ändern/löschen) und gibt die
    Antwort des Assistenten samt Tool-Ergebnissen zurück.
    """
    message = (request_data.message or "").strip()
    if not message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Se requiere un mensaje"
        )

    form = await get_form_or_404(db, form_id)

    ai = get_ai_client()
    if ai is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"No hay API key configurada para {config.AI_PROVIDER}",
        )
    client, model, provider = ai

    logger.info(
        "Chat-Anfrage für Formular %s an %s (%s): '%s...'",
        form_id,
        provider,
        model,
        message[:50],
    )
    agent = ChatAgent(db, client, model, provider, username=admin_user["username"])
    try:
        result = await agent.run(form, message)
    except openai.OpenAIError as e:
        logger.error("Fehler bei der KI-Anfrage: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=describe_ai_error(e),
        )

    await db.commit()
    return schemas.ChatResponse(
        message=result["message"],
        tool_calls=[schemas.ChatToolResult(**tr) for tr in result["tool_calls"]],
    )


@router.get(
    "/api/forms/{form_id}/chat/history", response_model=List[schemas.ChatMessageOut]
)
async def get_chat_history(
    form_id: str,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    await get_form_or_404(db, form_id)
    return await crud.crud_chat.get_chat_history(db, form_id)
