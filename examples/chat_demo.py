"""Minimal demonstration of the chat service (needs Redis and a completion backend)."""

from chat_core.api.service import open_chat, send_message

if __name__ == "__main__":
    user = "demo@example.com"
    page = open_chat(user)
    chat_id = page["chat"]["summary"]["id"]
    question = "请用一句话介绍你自己"
    result = send_message(user, chat_id, question, {"temperature": "0.5"})
    print("User:", result["user"]["content"])
    print("Assistant:", result["assistant"]["content"])
    print("Usage:", result["usage"])
