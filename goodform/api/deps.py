import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from goodform import config
from goodform.database import get_db_session  # noqa: F401  (für die Router)

logger = logging.getLogger(__name__)


async def verify_admin_token(authorization: Optional[str] = Header(None)):
    """
    Überprüft das Admin-Token im Authorization-Header.
    Erwartet wird ein einfaches, statisches Token ("Bearer <token>").
    """
    if authorization is None:
        logger.info("Admin-Zugriff verweigert: Kein Authorization-Header.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No autorizado: se requiere un token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.info("Admin-Zugriff verweigert: Ungültiges Token-Format.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Formato de token inválido. Se espera: 'Bearer <token>'",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if parts[1] != config.EXPECTED_ADMIN_TOKEN:
        logger.info("Admin-Zugriff verweigert: Ungültiges Token empfangen.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido o expirado.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {"username": config.ADMIN_USERNAME, "token_status": "verified"}
