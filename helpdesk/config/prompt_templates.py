"""
Helpdesk - Prompt Templates & User-Facing Strings
==================================================
Centralised prompt management for the answer generator.  All prompts
live here so they can be versioned and reviewed independently of
application logic.

Exports
-------
ANSWER_PROMPT_TEMPLATE, ANSWER_PROMPT_FIELDS, FALLBACK_RESPONSE,
NO_CONTEXT_PLACEHOLDER, NO_HISTORY_PLACEHOLDER, ROLE_LABELS.
"""

# ══════════════════════════════════════════════════════════════════════
#  ANSWER PROMPT
# ══════════════════════════════════════════════════════════════════════
# Rendered with ``ChatPromptTemplate.from_template``.  Every field in
# ``ANSWER_PROMPT_FIELDS`` must be supplied at render time.

ANSWER_PROMPT_TEMPLATE: str = """You are an assistant bot dedicated to order-related inquiries.
Your job is to make the customer feel heard and understood.
Answer using the context below. If the context does not cover the inquiry,
say so politely and offer general guidance instead of inventing details.

----------------
CONTEXT: {context}
----------------
CUSTOMER INQUIRY: {question}
----------------
CHAT HISTORY: {chatHistory}
----------------
Response:
"""

ANSWER_PROMPT_FIELDS: frozenset[str] = frozenset({"context", "question", "chatHistory"})


# ══════════════════════════════════════════════════════════════════════
#  FALLBACKS
# ══════════════════════════════════════════════════════════════════════

FALLBACK_RESPONSE: str = (
    "I'm sorry, I couldn't put together an answer to that just now. "
    "Could you rephrase your question or share a few more details about your order?"
)

NO_CONTEXT_PLACEHOLDER: str = "(No relevant documents found.)"

NO_HISTORY_PLACEHOLDER: str = "(No previous conversation.)"


# ══════════════════════════════════════════════════════════════════════
#  CHAT HISTORY
# ══════════════════════════════════════════════════════════════════════
# Display labels used when serialising history turns into the prompt.
# Unknown roles are title-cased as-is.

ROLE_LABELS: dict[str, str] = {"user": "Customer", "human": "Customer", "assistant": "Assistant", "ai": "Assistant", "system": "System"}
