"""System prompts and message templates for the game player."""

GAME_SYSTEM_PROMPT = (
    "You are playing the text-based game Warsim: The Realm of Aslona. "
    "Analyze the game text and respond with a single game decision to take. "
    "Your response should be only the number or thing requested. "
    "Valid actions include entering a number choice, typing 'y' or 'n' for yes/no questions, "
    "or entering text for name fields. "
    "Focus on exploration and making interesting choices in the game. "
    "DO NOT explain your reasoning or provide additional text. ONLY respond with a valid action. "
    "The game text comes from OCR, so a menu number may be misread (for example 8 and 0 "
    "can be confused); pick the option that matches the surrounding text."
)

# Sent to the vision model by the game loop.
GAME_SCREEN_PROMPT = "This is a text-based game screen. Read all visible text and return it exactly as shown."

# Fallback when the transcriber is called without a prompt.
DEFAULT_VISION_PROMPT = (
    "This is a screen from a text-based game. Read all text visible in this image and return it accurately. "
    "Pay special attention to menu options, numbers, and game text. "
    "Format your response to preserve the layout of text as it appears in the game."
)

GAME_STATE_HEADER = "Current game state:"
GAME_STATE_QUESTION = "What action should I take next?"

SUMMARY_HEADER = "PREVIOUS GAME CONTEXT:"
SUMMARY_FOOTER = (
    "Some older history has been removed to save space. "
    "Continue making decisions based on the current game state."
)
SUMMARY_ACKNOWLEDGEMENT = "Understood. I'll continue playing based on the current game state."

CONTROLS_HELP = """Controls:
  ESC - stop the player
  P   - pause / resume
  S   - toggle step mode
  N   - next step (while paused)
  +/= - faster (shorter delay)
  -   - slower (longer delay)
  R   - reset delay
  H   - show this help"""


def format_game_state(game_state: str) -> str:
    """Wrap a transcription in the user-turn template."""
    return f"{GAME_STATE_HEADER}\n{game_state}\n\n{GAME_STATE_QUESTION}"


__all__ = [
    "CONTROLS_HELP",
    "DEFAULT_VISION_PROMPT",
    "GAME_SCREEN_PROMPT",
    "GAME_STATE_HEADER",
    "GAME_STATE_QUESTION",
    "GAME_SYSTEM_PROMPT",
    "SUMMARY_ACKNOWLEDGEMENT",
    "SUMMARY_FOOTER",
    "SUMMARY_HEADER",
    "format_game_state",
]
