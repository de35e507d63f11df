"""Tests for the voice agent configuration."""

from application.agents.voice_agent import DEFAULT_VOICE_ID, DEFAULT_VOICE_LLM, build_agent_config, get_voice_tool_definitions


class TestBuildAgentConfig:
    def test_defaults(self) -> None:
        config = build_agent_config()["conversation_config"]

        assert config["tts"]["voice_id"] == DEFAULT_VOICE_ID
        assert config["agent"]["prompt"]["llm"] == DEFAULT_VOICE_LLM

    def test_model_is_mapped(self) -> None:
        config = build_agent_config(voice_id="voice-1", llm_model="claude-3-5-haiku-20241022")["conversation_config"]

        assert config["tts"]["voice_id"] == "voice-1"
        assert config["agent"]["prompt"]["llm"] == "claude-haiku-4-5"

    def test_unmapped_model_passes_through(self) -> None:
        config = build_agent_config(llm_model="custom-llm")["conversation_config"]

        assert config["agent"]["prompt"]["llm"] == "custom-llm"


class TestVoiceTools:
    def test_network_tools_get_longer_timeouts(self) -> None:
        tools = {t["name"]: t for t in get_voice_tool_definitions()}

        assert tools["web_search"]["response_timeout_secs"] == 30
        assert tools["archive_email"]["response_timeout_secs"] == 20
        assert tools["get_draft_content"]["type"] == "client"
