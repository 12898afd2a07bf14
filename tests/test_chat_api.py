import json
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from goodform import models
from goodform.ai_tools import _reduce
from goodform.chat_agent import estimate_cost, summarize_tool_results


def tool_call(call_id, name, args):
    return SimpleNamespace(
        id=call_id,
        function=SimpleNamespace(name=name, arguments=json.dumps(args)),
    )


def completion(content=None, tool_calls=None, prompt_tokens=1000, completion_tokens=200):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content, tool_calls=tool_calls))],
        usage=SimpleNamespace(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return self.replies.pop(0)


class FakeClient:
    def __init__(self, *replies):
        self.chat = SimpleNamespace(completions=FakeCompletions(replies))


@pytest.fixture
def use_fake_ai(monkeypatch):
    def _use(*replies):
        fake = FakeClient(*replies)
        monkeypatch.setattr(
            "goodform.api.endpoints.chat.get_ai_client",
            lambda: (fake, "fake-model", "openai"),
        )
        return fake

    return _use


@pytest.fixture
def survey(create_form, submit):
    form = create_form(builderMode="code")
    submit(form["id"], {"origen": "web", "nps": "9"})
    submit(form["id"], {"origen": "mail", "nps": "7"})
    return form


def _chat(client, auth_headers, form_id, message):
    return client.post(
        f"/api/forms/{form_id}/chat", json={"message": message}, headers=auth_headers
    )


def test_chat_requires_message(client, auth_headers, survey):
    response = _chat(client, auth_headers, survey["id"], "   ")
    assert response.status_code == 400
    assert response.json()["detail"] == "Se requiere un mensaje"


def test_chat_without_api_key(client, auth_headers, survey):
    response = _chat(client, auth_headers, survey["id"], "Hola")
    assert response.status_code == 503
    assert response.json()["detail"] == "No hay API key configurada para openai"


def test_chat_unknown_form(client, auth_headers, use_fake_ai):
    use_fake_ai(completion("nada"))
    assert _chat(client, auth_headers, "nope", "Hola").status_code == 404


def test_chat_plain_answer(client, auth_headers, survey, use_fake_ai):
    fake = use_fake_ai(completion("Hay 2 respuestas."))
    response = _chat(client, auth_headers, survey["id"], "¿Cuántas respuestas hay?")
    assert response.status_code == 200
    assert response.json() == {"message": "Hay 2 respuestas.", "toolCalls": []}

    first_call = fake.chat.completions.calls[0]
    assert first_call["model"] == "fake-model"
    assert first_call["tool_choice"] == "auto"
    assert "Total de respuestas: 2" in first_call["messages"][0]["content"]


def test_chat_creates_chart_through_tool(client, auth_headers, survey, use_fake_ai):
    fake = use_fake_ai(
        completion(
            tool_calls=[
                tool_call(
                    "call_1",
                    "create_chart",
                    {
                        "title": "Respuestas por origen",
                        "chartType": "pie",
                        "xAxisField": "origen",
                        "aggregationType": "count",
                    },
                )
            ]
        ),
        completion("Listo, creé el gráfico."),
    )
    response = _chat(client, auth_headers, survey["id"], "Crea un gráfico por origen")
    assert response.status_code == 200, response.text

    data = response.json()
    assert data["message"] == "Listo, creé el gráfico."
    assert data["toolCalls"][0]["toolCallId"] == "call_1"
    assert data["toolCalls"][0]["functionName"] == "create_chart"
    assert data["toolCalls"][0]["result"]["success"] is True

    # zweite Completion bekommt die Tool-Ergebnisse
    follow_up = fake.chat.completions.calls[1]["messages"]
    assert follow_up[-2]["role"] == "assistant"
    assert follow_up[-1]["role"] == "tool"
    assert follow_up[-1]["tool_call_id"] == "call_1"

    charts = client.get(f"/api/forms/{survey['id']}/charts", headers=auth_headers).json()
    assert [c["title"] for c in charts] == ["Respuestas por origen"]


def test_chat_summarizes_tools_when_model_is_silent(client, auth_headers, survey, use_fake_ai):
    use_fake_ai(
        completion(
            tool_calls=[
                tool_call("c1", "analyze_responses", {"field": "nps", "operation": "avg"}),
                tool_call("c2", "delete_chart", {"chartId": "nope"}),
            ]
        ),
        completion(""),
    )
    data = _chat(client, auth_headers, survey["id"], "Promedio de nps").json()
    assert data["toolCalls"][0]["result"] == {"result": 8.0}
    assert "error" in data["toolCalls"][1]["result"]
    assert data["message"] == (
        "✅ Acción completada: analyze_responses\n"
        "❌ Error en delete_chart: No se encontró el gráfico con ID nope"
    )


def test_chat_rejects_invalid_chart_from_model(client, auth_headers, survey, use_fake_ai):
    use_fake_ai(
        completion(
            tool_calls=[
                tool_call(
                    "c1",
                    "create_chart",
                    {
                        "title": "Promedio",
                        "chartType": "bar",
                        "xAxisField": "origen",
                        "aggregationType": "avg",
                    },
                )
            ]
        ),
        completion("No pude."),
    )
    data = _chat(client, auth_headers, survey["id"], "Promedio por origen").json()
    assert "error" in data["toolCalls"][0]["result"]
    charts = client.get(f"/api/forms/{survey['id']}/charts", headers=auth_headers).json()
    assert charts == []


def test_chat_history_and_usage_log(client, auth_headers, survey, use_fake_ai, sync_session):
    use_fake_ai(completion("Hola, ¿en qué te ayudo?", prompt_tokens=500, completion_tokens=50))
    _chat(client, auth_headers, survey["id"], "Hola")

    response = client.get(f"/api/forms/{survey['id']}/chat/history", headers=auth_headers)
    assert response.status_code == 200
    history = response.json()
    assert [(m["role"], m["content"]) for m in history] == [
        ("user", "Hola"),
        ("assistant", "Hola, ¿en qué te ayudo?"),
    ]

    logs = sync_session.execute(select(models.AiUsageLog)).scalars().all()
    assert len(logs) == 1
    assert logs[0].provider == "openai"
    assert logs[0].model == "fake-model"
    assert logs[0].form_id == survey["id"]
    assert logs[0].total_tokens == 550


def test_estimate_cost_uses_provider_defaults():
    assert estimate_cost("openai", 1_000_000, 1_000_000) == 75
    assert estimate_cost("deepseek", 2_000_000, 0) == 28
    assert estimate_cost("unknown", 1_000_000, 1_000_000) == 0


@pytest.mark.parametrize(
    "operation, values, expected",
    [
        ("count", ["a", "b", "a"], {"result": 3}),
        ("list", ["a", "b", "a"], {"result": ["a", "b"]}),
        ("avg", ["1", "2", "4"], {"result": 2.33}),
        ("sum", ["1", ["2"], "x"], {"result": 3.0}),
        ("min", ["-1", "5"], {"result": -1.0}),
        ("max", ["-1", "5"], {"result": 5.0}),
        ("avg", ["x", "y"], {"error": "No hay valores numéricos"}),
    ],
)
def test_reduce(operation, values, expected):
    assert _reduce(operation, values) == expected


def test_summarize_tool_results():
    text = summarize_tool_results(
        [
            {"function_name": "create_chart", "result": {"success": True, "message": "ok"}},
            {"function_name": "update_chart", "result": {"success": True}},
        ]
    )
    assert text == "✅ Gráfico creado: ok\n✅ Gráfico actualizado"


def test_estimate_cost_keeps_fractional_cents():
    # 1000 * 15 / 1e6 + 200 * 60 / 1e6
    assert estimate_cost("openai", 1000, 200) == pytest.approx(0.027)
    assert estimate_cost("openai", 1000, 200) > 0


def test_usage_log_stores_fractional_cost(client, auth_headers, survey, use_fake_ai, sync_session):
    use_fake_ai(completion("Hola", prompt_tokens=1000, completion_tokens=200))
    assert _chat(client, auth_headers, survey["id"], "Hola").status_code == 200

    log = sync_session.execute(select(models.AiUsageLog)).scalars().one()
    assert log.estimated_cost == pytest.approx(0.027)
