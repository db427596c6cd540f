"""POST /chat/send and POST /chat through the FastAPI app."""
from perpology.agents.market_agent import build_agent
from perpology.core.errors import GenerationFailed, error_to_status
from perpology.services.completion import ChatCompletionService

from conftest import SIGNAL_REPLY, ScriptedModel, override_completion

WALLET = "0xAbC123"


def _send(client, message, **extra):
    body = {"message": message, "ownerIdentity": WALLET}
    body.update(extra)
    return client.post("/chat/send", json=body)


def test_new_chat_persists_user_then_assistant(client):
    r = _send(client, "What's your BTC setup?", isNewChat=True)

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["response"] == SIGNAL_REPLY
    chat_id = body["chatId"]

    r = client.get(f"/chats/{WALLET}/{chat_id}")
    assert r.status_code == 200
    chat = r.json()["chat"]
    assert chat["title"] == "What's your BTC setup?"
    assert [(m["role"], m["content"]) for m in chat["messages"]] == [
        ("user", "What's your BTC setup?"),
        ("assistant", SIGNAL_REPLY),
    ]
    assert chat["messages"][1]["metadata"] == body["metadata"]


def test_send_returns_trading_metadata(client):
    body = _send(client, "Give me a BTC trade").json()

    metadata = body["metadata"]
    assert metadata["hasTradingSignal"] is True
    assert metadata["hasChart"] is True
    assert metadata["cryptoSymbols"] == ["BTC"]
    assert metadata["links"] == ["https://www.coindesk.com/markets"]
    assert metadata["tradingData"] == {
        "entry": 42000.0,
        "stopLoss": 40500.0,
        "takeProfit": 45000.0,
        "direction": "long",
    }


def test_follow_up_extends_existing_chat(client, scripted_model):
    chat_id = _send(client, "BTC?", isNewChat=True).json()["chatId"]

    r = _send(client, "and ETH?", chatId=chat_id)

    assert r.json()["chatId"] == chat_id
    messages = client.get(f"/chats/{WALLET}/{chat_id}").json()["chat"]["messages"]
    assert [m["role"] for m in messages] == ["user", "assistant", "user", "assistant"]
    assert len(client.get(f"/chats/{WALLET}").json()["chats"]) == 1


def test_missing_wallet_is_rejected(client):
    r = client.post("/chat/send", json={"message": "hi"})

    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Wallet address is required"}


def test_missing_message_is_rejected(client):
    r = client.post("/chat/send", json={"message": "   ", "ownerIdentity": WALLET})

    assert r.status_code == 400
    assert r.json()["error"] == "Message is required"


def test_other_wallets_chat_is_not_found(client):
    chat_id = _send(client, "BTC?", isNewChat=True).json()["chatId"]

    r = client.post("/chat/send", json={"message": "hi", "ownerIdentity": "0xOther", "chatId": chat_id})

    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Chat not found"}


def test_generation_failure_keeps_user_message(client, gateway):
    override_completion(
        client, ChatCompletionService(gateway, agent=build_agent(ScriptedModel(RuntimeError("boom")).model))
    )

    r = _send(client, "BTC outlook?", isNewChat=True)

    assert r.status_code == 503
    assert r.json() == {"success": False, "error": "Failed to generate response"}
    chats = client.get(f"/chats/{WALLET}").json()["chats"]
    assert len(chats) == 1
    messages = client.get(f"/chats/{WALLET}/{chats[0]['id']}").json()["chat"]["messages"]
    assert [(m["role"], m["content"]) for m in messages] == [("user", "BTC outlook?")]


def test_quota_failure_maps_to_billing_message():
    try:
        try:
            raise RuntimeError("Error code: 429 - insufficient_quota")
        except RuntimeError as cause:
            raise GenerationFailed("Failed to generate response") from cause
    except GenerationFailed as exc:
        status, message = error_to_status(exc)

    assert status == 503
    assert "quota exceeded" in message


def test_stateless_chat_stores_nothing(client, scripted_model):
    r = client.post(
        "/chat",
        json={
            "message": "and now?",
            "chatHistory": [
                {"role": "user", "content": "remember SOL"},
                {"role": "assistant", "content": "SOL noted."},
            ],
        },
    )

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert "chatId" not in body
    assert body["metadata"]["hasTradingSignal"] is True
    sent = str(scripted_model.calls[0][0])
    assert "remember SOL" in sent
    assert client.get(f"/chats/{WALLET}").json()["chats"] == []


def test_general_question_still_reaches_model_with_market_overview(client, scripted_model):
    r = _send(client, "How is overall market sentiment today?", isNewChat=True)

    assert r.status_code == 200
    messages, _ = scripted_model.calls[0]
    instructions = messages[-1].instructions
    assert "Current market data: {" in instructions
    assert '"cryptoData": null' in instructions
    assert '"classification": "Greed"' in instructions
    assert "Current market data" not in str(messages[-1].parts)
