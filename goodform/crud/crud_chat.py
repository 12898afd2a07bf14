from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from goodform import models


async def create_chat_message(
    db: AsyncSession,
    form_id: str,
    role: str,
    content: str,
    username: Optional[str] = None,
    tool_calls: Optional[List[Any]] = None,
) -> models.ChatMessage:
    message = models.ChatMessage(
        form_id=form_id,
        role=role,
        content=content,
        username=username,
        tool_calls=tool_calls,
    )
    db.add(message)
    await db.flush()
    return message


async def get_chat_history(db: AsyncSession, form_id: str) -> List[models.ChatMessage]:
    result = await db.execute(
        select(models.ChatMessage)
        .where(models.ChatMessage.form_id == form_id)
        .order_by(models.ChatMessage.id)
    )
    return list(result.scalars().all())


async def log_ai_usage(db: AsyncSession, **values) -> models.AiUsageLog:
    entry = models.AiUsageLog(**values)
    db.add(entry)
    await db.flush()
    return entry
