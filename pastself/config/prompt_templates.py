"""
PastSelf - Prompt Templates & Fixed Vocabularies
=================================================
Centralised prompt management for the answer composer and the emotion
classifier, plus the closed vocabularies the core relies on (emotion
labels, keyword matching constants, user-facing error
messages).  All prompts live here so they can be reviewed and tuned
independently of application logic.

Exports
-------
PERSONA_PROMPT, ASK_PROMPT_TEMPLATE, EMOTION_PROMPT_TEMPLATE,
EMOTION_MAP, DEFAULT_EMOTION, KEYWORD_STOPWORDS, CHAT_GREETING,
NEW_CHAT_TITLE, OVERLOADED_MESSAGE, QUOTA_MESSAGE, GENERIC_FAILURE_MESSAGE,
CHAT_ERROR_PREFIX.
"""

# ══════════════════════════════════════════════════════════════════════
#  PERSONA
# ══════════════════════════════════════════════════════════════════════

PERSONA_PROMPT: str = (
    "You are an AI embodiment of a person's past self. You have access to their journal entries "
    "and can provide insights, answer questions, and reflect on their experiences. Be empathetic, "
    "thoughtful, and help them understand patterns in their life. Speak in first person as if you "
    "are their past self talking to them. Ground every answer only in the journal entries supplied "
    "below; if they do not cover the question, say so honestly."
)


# ══════════════════════════════════════════════════════════════════════
#  ASK-YOUR-PAST-SELF PROMPT
# ══════════════════════════════════════════════════════════════════════

ASK_PROMPT_TEMPLATE: str = """{persona}

Here are the most relevant entries from my journal:

{entries}

Question: {question}

Answer as my past self, drawing from these journal entries:"""

NO_ENTRIES_PLACEHOLDER: str = "(No journal entries yet.)"
UNDATED_ENTRY_LABEL: str = "Recent"


# ══════════════════════════════════════════════════════════════════════
#  EMOTION CLASSIFICATION
# ══════════════════════════════════════════════════════════════════════

EMOTION_PROMPT_TEMPLATE: str = """Analyze the emotional tone of this text. Respond with ONLY ONE of these emotions: happy, sad, stressed, calm, excited, angry, anxious, content, frustrated, hopeful.

Text: "{text}"

Emotion:"""

# label → (hex colour, glyph)
EMOTION_MAP: dict[str, tuple[str, str]] = {
    "happy": ("#10b981", "😊"),
    "sad": ("#6b7280", "😢"),
    "stressed": ("#ef4444", "😰"),
    "calm": ("#06b6d4", "😌"),
    "excited": ("#f59e0b", "🎉"),
    "angry": ("#dc2626", "😠"),
    "anxious": ("#f97316", "😟"),
    "content": ("#14b8a6", "😊"),
    "frustrated": ("#ef4444", "😤"),
    "hopeful": ("#8b5cf6", "🌟"),
}

# Labels outside the closed set collapse to this one
DEFAULT_EMOTION: str = "calm"


# ══════════════════════════════════════════════════════════════════════
#  GOALS & HABITS
# ══════════════════════════════════════════════════════════════════════

KEYWORD_STOPWORDS: frozenset[str] = frozenset({"the", "and", "for", "with", "that", "this"})
MIN_KEYWORD_LENGTH: int = 3
KEYWORD_MATCH_RATIO: float = 0.4

PROGRESS_PER_MENTION: int = 10
MAX_PROGRESS: int = 100


# ══════════════════════════════════════════════════════════════════════
#  CHAT SESSIONS
# ══════════════════════════════════════════════════════════════════════

CHAT_GREETING: str = "You can ask me anything about your past journal entries. What would you like to know?"
NEW_CHAT_TITLE: str = "New Chat"
CHAT_TITLE_LENGTH: int = 40
CHAT_ERROR_PREFIX: str = "Sorry, I ran into an error: "


# ══════════════════════════════════════════════════════════════════════
#  USER-FACING GENERATION FAILURES
# ══════════════════════════════════════════════════════════════════════

OVERLOADED_MESSAGE: str = "The AI is currently overloaded. Please try again in a minute. 🕐"
QUOTA_MESSAGE: str = "API quota exceeded. Please try again later or reduce the question complexity."
GENERIC_FAILURE_MESSAGE: str = "Unable to access memories right now. Please try again."
