import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from goodform import crud, models, schemas
from goodform.aggregation import aggregate
from goodform.api.deps import get_db_session, verify_admin_token
from goodform.api.endpoints.forms import get_form_or_404

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_chart_or_404(db: AsyncSession, chart_id: str) -> models.Chart:
    chart = await crud.crud_chart.get_chart(db, chart_id)
    if chart is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Gráfico no encontrado"
        )
    return chart


@router.post(
    "/api/forms/{form_id}/charts",
    response_model=schemas.ChartOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_chart(
    form_id: str,
    chart_in: schemas.ChartCreate,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    await get_form_or_404(db, form_id)
    chart = await crud.crud_chart.create_chart(db, form_id, chart_in)
    await db.commit()
    logger.info("Diagramm %s für Formular %s erstellt.", chart.id, form_id)
    return chart


@router.get("/api/forms/{form_id}/charts", response_model=List[schemas.ChartOut])
async def list_charts(
    form_id: str,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    await get_form_or_404(db, form_id)
    return await crud.crud_chart.get_charts_for_form(db, form_id)


@router.patch("/api/charts/{chart_id}", response_model=schemas.ChartOut)
async def update_chart(
    chart_id: str,
    chart_in: schemas.ChartUpdate,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    chart = await get_chart_or_404(db, chart_id)
    updates = chart_in.model_dump(exclude_unset=True)

    # Zusammengeführten Stand prüfen (yAxisField-Pflicht bei sum/avg/min/max)
    field_names = schemas.ChartBase.model_fields.keys()
    try:
        schemas.ChartBase.model_validate(
            {key: updates.get(key, getattr(chart, key)) for key in field_names}
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[err.get("msg", "") for err in e.errors()],
        )

    chart = await crud.crud_chart.update_chart(db, chart, updates)
    await db.commit()
    return chart


@router.delete("/api/charts/{chart_id}")
async def delete_chart(
    chart_id: str,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    chart = await get_chart_or_404(db, chart_id)
    await crud.crud_chart.delete_chart(db, chart)
    await db.commit()
    return {"message": "Gráfico eliminado exitosamente"}


@router.get("/api/charts/{chart_id}/series", response_model=schemas.ChartSeriesResponse)
async def get_chart_series(
    chart_id: str,
    db: AsyncSession = Depends(get_db_session),
    admin_user: dict = Depends(verify_admin_token),
):
    """Berechnet die Serie bei jedem Abruf neu aus den aktuellen Antworten."""
    chart = await get_chart_or_404(db, chart_id)
    # Kategorien in der Reihenfolge ihres ersten Auftretens, älteste Antwort zuerst
    responses = await crud.crud_response.get_responses_for_form(
        db, chart.form_id, newest_first=False
    )
    series = aggregate(chart, responses)
    return schemas.ChartSeriesResponse(
        chart=schemas.ChartOut.model_validate(chart),
        series=series,
        empty=not series,
    )
