"""Configuration of the ElevenLabs conversational voice agent.

Tool definitions are sent with the agent so its LLM knows about them; the
implementations run in the browser as client tools.
"""

from typing import Any, Optional

from application.agents.agent_tools import AGENT_TOOLS, NETWORK_TOOLS

DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"
DEFAULT_VOICE_LLM = "gpt-4o"

VOICE_AGENT_PROMPT = """You are a voice-first email assistant. You are having a natural phone-call-style conversation with the user about their email.

VOICE CONVERSATION GUIDELINES:
- You are SPEAKING, not writing. Keep responses conversational, natural, and concise.
- Never use markdown, bullet points, numbered lists, or formatting symbols.
- Narrate your actions naturally: "Let me draft that reply for you" or "I'll archive that now."
- Confirm important actions before executing: "Should I send that?" or "Want me to archive this?"
- Use conversational fillers naturally: "Sure thing", "Got it", "Alright".

OPENING BEHAVIOR:
- For a new thread, mention who it's from and the topic in one sentence, then offer to read it.
- If the user wants it read, call get_email_content and read it word-for-word.
- When no email thread is open, just say "How can I help?"
"""

# ElevenLabs uses its own identifiers for some Claude models
ELEVENLABS_MODEL_IDS: dict[str, str] = {
    "claude-sonnet-4-20250514": "claude-sonnet-4@20250514",
    "claude-opus-4-20250514": "claude-sonnet-4-5",
    "claude-3-5-sonnet-20241022": "claude-3-5-sonnet",
    "claude-3-5-haiku-20241022": "claude-haiku-4-5",
    "gpt-4.1": "gpt-4.1",
    "gpt-4.1-mini": "gpt-4.1-mini",
    "gpt-4.1-nano": "gpt-4.1-nano",
    "gpt-4o": "gpt-4o",
    "gpt-4o-mini": "gpt-4o-mini",
}

VOICE_SPECIFIC_TOOLS: list[dict[str, Any]] = [
    {
        "type": "client",
        "name": "get_email_content",
        "description": (
            "Get the full verbatim text of messages in the current email thread. Use this when the user asks you "
            "to read the email. Read the returned text word-for-word."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "message_number": {
                    "type": "string",
                    "description": 'Which message to read: "1" for oldest, "2" for second, "last" for most recent. Omit to get all messages.',
                },
            },
            "required": [],
        },
        "expects_response": True,
        "response_timeout_secs": 10,
    },
    {
        "type": "client",
        "name": "get_draft_content",
        "description": "Get the exact text of the current draft email so it can be read back verbatim to the user.",
        "parameters": {"type": "object", "properties": {}, "required": []},
        "expects_response": True,
        "response_timeout_secs": 10,
    },
]

CLIENT_EVENTS = [
    "audio",
    "agent_response",
    "agent_response_correction",
    "user_transcript",
    "tentative_user_transcript",
    "interruption",
    "client_tool_call",
    "conversation_initiation_metadata",
    "ping",
    "vad_score",
]


def map_to_elevenlabs_model_id(model_id: str) -> str:
    return ELEVENLABS_MODEL_IDS.get(model_id, model_id)


def get_voice_tool_definitions() -> list[dict[str, Any]]:
    tools = [
        {
            "type": "client",
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters,
            "expects_response": True,
            "response_timeout_secs": 30 if tool.name in NETWORK_TOOLS else 20,
        }
        for tool in AGENT_TOOLS
    ]
    return tools + VOICE_SPECIFIC_TOOLS


def build_agent_config(voice_id: Optional[str] = None, llm_model: Optional[str] = None) -> dict[str, Any]:
    """Build the ElevenLabs agent creation payload.

    Args:
        voice_id: TTS voice (defaults to Rachel)
        llm_model: Chat model id selected in the app

    Returns:
        The ``conversation_config`` request body
    """
    return {
        "conversation_config": {
            "agent": {
                "first_message": "How can I help?",
                "language": "en",
                "prompt": {
                    "prompt": VOICE_AGENT_PROMPT,
                    "llm": map_to_elevenlabs_model_id(llm_model) if llm_model else DEFAULT_VOICE_LLM,
                    "temperature": 0.7,
                    "tools": get_voice_tool_definitions(),
                },
            },
            "tts": {
                "model_id": "eleven_turbo_v2",
                "voice_id": voice_id or DEFAULT_VOICE_ID,
                "stability": 0.5,
                "similarity_boost": 0.8,
                "speed": 1.0,
            },
            "asr": {"quality": "high", "provider": "scribe_realtime"},
            "conversation": {"client_events": CLIENT_EVENTS},
        }
    }
