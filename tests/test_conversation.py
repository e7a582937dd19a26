import asyncio
import json

from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from grafibot.core.graph import (
    APOLOGY_MESSAGE,
    ConversationService,
    FileReply,
    build_tools,
    compile_graph,
)
from grafibot.core.graph.responses import DEFAULT_REPLY, extract_final_response, render_tool_payload
from grafibot.core.locks import KeyedLock
from grafibot.core.search.outcomes import NO_RESULTS_MESSAGE

from conftest import FailingChatModel, scripted_model, tool_call

CONV = "5215512345678"


def tool_messages(messages) -> list[ToolMessage]:
    return [m for m in messages if isinstance(m, ToolMessage)]


async def test_turn_searches_then_answers(make_service, history_store):
    model = scripted_model(
        tool_call("search_products", {"query": "papel fotográfico A4"}),
        AIMessage(content="Tengo Papel Fotográfico A4 Brillante (ID: 101) a $85.50."),
    )
    service = make_service(model)

    reply = await service.handle_turn(CONV, "¿Tienen papel fotográfico A4?")

    assert reply == "Tengo Papel Fotográfico A4 Brillante (ID: 101) a $85.50."
    [search_result] = tool_messages(model.calls[1])
    payload = json.loads(search_result.content)
    assert payload["status"] == "success"
    assert payload["products"][0]["ID_Producto"] == 101

    history = await history_store.get_messages(CONV)
    assert [type(m) for m in history] == [HumanMessage, AIMessage, ToolMessage, AIMessage]
    assert history[0].content == "¿Tienen papel fotográfico A4?"


async def test_second_turn_sees_first_turn(make_service, history_store):
    model = scripted_model("¡Hola! ¿En qué te ayudo?", "Claro, dime qué producto buscas.")
    service = make_service(model)

    await service.handle_turn(CONV, "hola")
    await service.handle_turn(CONV, "quiero cotizar")

    second_call = model.calls[1]
    assert [m.content for m in second_call if isinstance(m, HumanMessage)] == ["hola", "quiero cotizar"]
    assert len(await history_store.get_messages(CONV)) == 4


async def test_failed_turn_apologizes_and_keeps_history(make_service, history_store):
    await history_store.append_messages(
        CONV, [HumanMessage(content="hola"), AIMessage(content="¡Hola!")]
    )
    service = make_service(FailingChatModel(messages=iter([])))

    reply = await service.handle_turn(CONV, "¿tienen tinta?")

    assert reply == APOLOGY_MESSAGE
    history = await history_store.get_messages(CONV)
    assert [m.content for m in history] == ["hola", "¡Hola!"]


async def test_add_to_quote_tool_uses_conversation_quote(make_service, quote_engine):
    model = scripted_model(
        tool_call("add_to_quote", {"product_id": 101, "quantity": 2}),
        "Listo, agregué 2 piezas.",
    )
    service = make_service(model)

    await service.handle_turn(CONV, "agrega 2 del 101")

    summary = await quote_engine.get_summary(CONV)
    assert [(i.product_id, i.quantity) for i in summary.items] == [(101, 2)]
    assert (await quote_engine.get_summary("other")).is_empty


async def test_quote_error_is_reported_to_model_and_turn_continues(make_service, quote_engine):
    model = scripted_model(
        tool_call("add_to_quote", {"product_id": 4006, "quantity": 2}),
        "Solo queda 1 pieza de ese vinil.",
    )
    service = make_service(model)

    reply = await service.handle_turn(CONV, "agrega 2 del 4006")

    assert reply == "Solo queda 1 pieza de ese vinil."
    [result] = tool_messages(model.calls[1])
    payload = json.loads(result.content)
    assert payload["status"] == "error"
    assert payload["error"] == "insufficient_stock"
    assert (await quote_engine.get_summary(CONV)).is_empty


async def test_invalid_tool_arguments_come_back_as_error(make_service):
    model = scripted_model(
        tool_call("add_to_quote", {"product_id": "papel", "quantity": 2}),
        "¿Me confirmas el ID del producto?",
    )
    service = make_service(model)

    reply = await service.handle_turn(CONV, "agrega papel")

    assert reply == "¿Me confirmas el ID del producto?"
    [result] = tool_messages(model.calls[1])
    assert json.loads(result.content)["error"] == "invalid_arguments"


async def test_empty_model_answer_falls_back_to_tool_result(make_service):
    model = scripted_model(
        tool_call("search_products", {"query": "papel fotográfico A4"}),
        AIMessage(content=""),
    )
    service = make_service(model)

    reply = await service.handle_turn(CONV, "papel fotográfico A4")

    assert "Papel Fotográfico A4 Brillante" in reply
    assert "ID: 101" in reply


async def test_generated_document_is_returned_as_file(make_service, quote_engine, history_store):
    await quote_engine.add_item(CONV, 101, 1)
    model = scripted_model(
        tool_call("generate_quote_document"),
        "Aquí tienes tu cotización.",
    )
    service = make_service(model)

    reply = await service.handle_turn(CONV, "mándame la cotización")

    assert isinstance(reply, FileReply)
    assert reply.path.exists()
    assert reply.path.suffix == ".xlsx"
    assert reply.message == "Aquí tienes tu cotización."
    assert reply.reference == reply.path.stem


async def test_tool_round_limit_ends_turn(make_service, history_store):
    model = scripted_model(*(tool_call("handle_greeting", call_id=f"g{i}") for i in range(5)))
    service = make_service(model, max_tool_rounds=2)

    reply = await service.handle_turn(CONV, "hola")

    assert len(model.calls) == 3
    assert isinstance(reply, str) and reply != APOLOGY_MESSAGE

    history = await history_store.get_messages(CONV)
    answered = {m.tool_call_id for m in history if isinstance(m, ToolMessage)}
    requested = {
        call["id"] for m in history if isinstance(m, AIMessage) for call in m.tool_calls
    }
    assert requested == answered == {"g0", "g1"}
    assert isinstance(history[-1], AIMessage)
    assert history[-1].content == reply


async def test_reset_clears_history_and_quote(make_service, quote_engine, history_store):
    await quote_engine.add_item(CONV, 101, 1)
    await history_store.append_messages(CONV, [HumanMessage(content="hola")])
    service = make_service(scripted_model())

    await service.reset(CONV)

    assert await history_store.get_messages(CONV) == []
    assert (await quote_engine.get_summary(CONV)).is_empty


async def test_concurrent_turns_of_one_conversation_are_serialized(make_service, history_store):
    model = scripted_model("uno", "dos")
    service = make_service(model)

    await asyncio.gather(
        service.handle_turn(CONV, "primero"),
        service.handle_turn(CONV, "segundo"),
    )

    history = await history_store.get_messages(CONV)
    assert [m.content for m in history] == ["primero", "uno", "segundo", "dos"]


async def test_turns_wait_on_the_given_lock_registry(search_engine, quote_engine, history_store):
    shared = KeyedLock()
    graph = compile_graph(scripted_model("¡Hola!"), build_tools(search_engine, quote_engine))
    service = ConversationService(graph, history_store, quote_engine, turn_locks=shared)
    assert service.turn_locks is shared

    async with shared.hold(CONV):
        turn = asyncio.create_task(service.handle_turn(CONV, "hola"))
        await asyncio.sleep(0.05)
        assert not turn.done()

    assert await turn == "¡Hola!"
    assert len(shared) == 0


def test_render_many_results_asks_a_question():
    text = render_tool_payload(json.dumps({
        "status": "many_results",
        "count": 12,
        "common_attributes": ["tipo", "marca"],
    }))

    assert "12" in text
    assert "¿" in text and "?" in text
    assert "tipo o marca" in text


def test_render_no_results_and_plain_text():
    assert render_tool_payload('{"status": "no_results"}') == NO_RESULTS_MESSAGE
    assert render_tool_payload("¡Hola!") == "¡Hola!"
    assert render_tool_payload('{"status": "error", "message": "No disponible"}') == "No disponible"


def test_extract_prefers_final_model_text():
    messages = [
        AIMessage(content="", tool_calls=[{"name": "clear_quote", "args": {}, "id": "c"}]),
        ToolMessage(content='{"status": "cleared", "message": "Vaciada."}', tool_call_id="c"),
        AIMessage(content="Tu cotización quedó vacía."),
    ]

    assert extract_final_response(messages) == "Tu cotización quedó vacía."
    assert extract_final_response(messages[:2]) == "Vaciada."
    assert extract_final_response([]) == DEFAULT_REPLY
