import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import openai
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from . import config, crud, models
from .ai_tools import (
    AGENT_TOOLS,
    execute_get_existing_charts,
    execute_get_form_fields,
    execute_tool,
)

logger = logging.getLogger(__name__)

# Werkzeuge, die Diagramme verändern
WRITE_TOOLS = ("create_chart", "update_chart", "delete_chart")

SYSTEM_PROMPT_TEMPLATE = """Eres un asistente de análisis de datos para formularios.
Tienes acceso a las siguientes herramientas para ayudar al usuario:
- analyze_responses: Para calcular estadísticas y analizar datos
- create_chart: Para crear nuevos gráficos
- update_chart: Para modificar gráficos existentes
- delete_chart: Para eliminar gráficos
- get_existing_charts: Para ver qué gráficos ya existen
- get_form_fields: Para ver qué campos tiene el formulario

Contexto del formulario:
- Nombre: {title}
- Total de respuestas: {response_count}
- Campos disponibles: {fields}
- Gráficos existentes: {charts}

Cuando el usuario te pida crear o modificar gráficos, usa las herramientas disponibles.
Responde en español de manera clara y concisa."""


def get_ai_client() -> Optional[Tuple[AsyncOpenAI, str, str]]:
    """Liefert (client, model, provider) oder None, wenn kein API-Key gesetzt ist."""
    provider = config.AI_PROVIDER
    if provider == "deepseek":
        if not config.DEEPSEEK_API_KEY:
            return None
        client = AsyncOpenAI(
            api_key=config.DEEPSEEK_API_KEY, base_url=config.DEEPSEEK_BASE_URL
        )
        return client, config.DEEPSEEK_MODEL, provider
    if not config.OPENAI_API_KEY:
        return None
    return AsyncOpenAI(api_key=config.OPENAI_API_KEY), config.OPENAI_MODEL, "openai"


def estimate_cost(provider: str, prompt_tokens: int, completion_tokens: int) -> float:
    """Geschätzte Kosten in Cent, nicht auf ganze Cent gerundet."""
    default_input, default_output = config.DEFAULT_PRICES.get(provider, (0, 0))
    input_price = float(config.AI_INPUT_PRICE or default_input)
    output_price = float(config.AI_OUTPUT_PRICE or default_output)
    input_cost = prompt_tokens / 1_000_000 * input_price
    output_cost = completion_tokens / 1_000_000 * output_price
    return round(input_cost + output_cost, 6)


def describe_ai_error(exc: Exception) -> str:
    text = str(exc)
    if isinstance(exc, openai.AuthenticationError):
        return "La clave API no es válida. Por favor verifica la configuración."
    if "insufficient_quota" in text:
        return "La cuenta de IA no tiene créditos suficientes."
    if isinstance(exc, openai.RateLimitError):
        return "Se alcanzó el límite de solicitudes. Por favor intenta más tarde."
    if isinstance(exc, openai.APIConnectionError):
        return "No se pudo conectar con el servicio de IA. Verifica tu conexión."
    return f"Error: {text}" if text else "Error al procesar tu mensaje"


def summarize_tool_results(tool_results: List[Dict[str, Any]]) -> str:
    actions = []
    for tr in tool_results:
        result = tr["result"] or {}
        name = tr["function_name"]
        if isinstance(result, dict) and result.get("error"):
            actions.append(f"❌ Error en {name}: {result['error']}")
        elif name == "create_chart":
            actions.append(f"✅ Gráfico creado: {result.get('message', '')}")
        elif name == "update_chart":
            actions.append("✅ Gráfico actualizado")
        elif name == "delete_chart":
            actions.append("✅ Gráfico eliminado")
        else:
            actions.append(f"✅ Acción completada: {name}")
    return "\n".join(actions)


def _tool_call_to_dict(tool_call) -> Dict[str, Any]:
    return {
        "id": tool_call.id,
        "type": "function",
        "function": {
            "name": tool_call.function.name,
            "arguments": tool_call.function.arguments,
        },
    }


class ChatAgent:
    """Ein Chat-Durchlauf: erste Completion mit Tools, Tools ausführen, zweite Completion."""

    def __init__(
        self,
        db: AsyncSession,
        client: AsyncOpenAI,
        model: str,
        provider: str,
        username: Optional[str] = None,
        can_edit: bool = True,
    ):
        self.db = db
        self.client = client
        self.model = model
        self.provider = provider
        self.username = username
        self.can_edit = can_edit

    async def _complete(self, form_id: str, **kwargs):
        completion = await self.client.chat.completions.create(model=self.model, **kwargs)
        usage = getattr(completion, "usage", None)
        if usage:
            logger.info(
                "%s Token-Nutzung: Prompt=%s, Completion=%s, Total=%s",
                self.provider,
                usage.prompt_tokens,
                usage.completion_tokens,
                usage.total_tokens,
            )
            await crud.crud_chat.log_ai_usage(
                self.db,
                provider=self.provider,
                model=self.model,
                form_id=form_id,
                username=self.username,
                prompt_tokens=usage.prompt_tokens or 0,
                completion_tokens=usage.completion_tokens or 0,
                total_tokens=usage.total_tokens or 0,
                estimated_cost=estimate_cost(
                    self.provider, usage.prompt_tokens or 0, usage.completion_tokens or 0
                ),
            )
        return completion.choices[0].message

    async def build_system_prompt(self, form: models.Form) -> str:
        fields = await execute_get_form_fields(self.db, form.id)
        charts = await execute_get_existing_charts(self.db, form.id)
        response_count = await crud.crud_form.count_responses(self.db, form.id)
        return SYSTEM_PROMPT_TEMPLATE.format(
            title=form.title,
            response_count=response_count,
            fields=json.dumps(fields, ensure_ascii=False),
            charts=json.dumps(charts, ensure_ascii=False),
        )

    async def _run_tool_call(self, form_id: str, tool_call) -> Dict[str, Any]:
        name = tool_call.function.name
        try:
            args = json.loads(tool_call.function.arguments or "{}")
        except json.JSONDecodeError:
            args = None
        if not isinstance(args, dict):
            result = {"error": f"Argumentos inválidos para {name}"}
        elif name in WRITE_TOOLS and not self.can_edit:
            result = {"error": "No tienes permisos de edición para modificar gráficos"}
        else:
            result = await execute_tool(self.db, form_id, name, args)
        logger.debug("Tool %s ausgeführt: %s", name, result)
        return {"tool_call_id": tool_call.id, "function_name": name, "result": result}

    async def run(self, form: models.Form, message: str) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": await self.build_system_prompt(form)},
            {"role": "user", "content": message},
        ]

        ai_message = await self._complete(
            form.id, messages=messages, tools=AGENT_TOOLS, tool_choice="auto"
        )

        tool_calls = list(getattr(ai_message, "tool_calls", None) or [])
        tool_results = []
        if tool_calls:
            for tool_call in tool_calls:
                tool_results.append(await self._run_tool_call(form.id, tool_call))

            follow_up = messages + [
                {
                    "role": "assistant",
                    "content": ai_message.content or "",
                    "tool_calls": [_tool_call_to_dict(tc) for tc in tool_calls],
                }
            ]
            follow_up += [
                {
                    "role": "tool",
                    "tool_call_id": tr["tool_call_id"],
                    "content": json.dumps(tr["result"], ensure_ascii=False, default=str),
                }
                for tr in tool_results
            ]
            ai_message = await self._complete(form.id, messages=follow_up)

        await crud.crud_chat.create_chat_message(
            self.db, form.id, "user", message, username=self.username
        )

        content = ai_message.content or ""
        if not content and tool_results:
            content = summarize_tool_results(tool_results)

        await crud.crud_chat.create_chat_message(
            self.db,
            form.id,
            "assistant",
            content,
            username=self.username,
            tool_calls=[_tool_call_to_dict(tc) for tc in tool_calls] or None,
        )

        return {"message": content, "tool_calls": tool_results}
