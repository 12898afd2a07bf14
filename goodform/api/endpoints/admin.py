import logging

from fastapi import APIRouter, HTTPException, status

from goodform import config, schemas

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/admin/login", response_model=schemas.Token)
async def login_for_admin_access_token(admin_credentials: schemas.AdminLoginRequest):
    if (
        admin_credentials.username == config.ADMIN_USERNAME
        and admin_credentials.password == config.ADMIN_PASSWORD
    ):
        logger.info("Admin '%s' erfolgreich eingeloggt.", admin_credentials.username)
        return {"access_token": config.EXPECTED_ADMIN_TOKEN, "token_type": "bearer"}

    logger.warning(
        "Fehlgeschlagener Admin-Login für Benutzer: '%s'", admin_credentials.username
    )
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Usuario o contraseña incorrectos",
        headers={"WWW-Authenticate": "Bearer"},
    )
