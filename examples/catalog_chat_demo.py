"""Minimal demonstration of the conversational catalog manager."""

from catalog_agent.api.service import process_prompt

if __name__ == "__main__":
    conversation_id = None
    for question in (
        "What items do we have?",
        "Add a Desk Lamp, an LED lamp with adjustable brightness, price 39.90, SKU DL-001",
    ):
        result = process_prompt(question, conversation_id=conversation_id)
        conversation_id = result["conversation_id"]
        print("User:", question)
        print("Agent:", result["transcript"][-1]["text"])
        print("Last action:", result["last_action"])
