"""System prompts for the conversational chain."""

CONTEXT_HEADER = "Context:"

CONTEXTUALIZE_QUESTION_PROMPT = (
    "Given a chat history and the latest user question which might reference context in the chat history, "
    "formulate a standalone question which can be understood without the chat history. "
    "Do NOT answer the question, just reformulate it if needed and otherwise return it as is."
)

ANSWER_PROMPT = (
    "Answer the user's question based only on the following context. "
    "Use the earlier conversation only to keep the reply consistent, never as a source of facts. "
    "If the context does not contain the answer, say that the document does not provide that information."
)

FAILED_TURN_MESSAGE = "Sorry, something went wrong while answering that question. Please try again."
