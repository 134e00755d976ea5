"""AI client and assistant backends."""

from .assistant import AssistantBackend, OpenAIAssistant, parse_building_analysis
from .client import AIClient, ClientSettings

__all__ = ["AIClient", "ClientSettings", "AssistantBackend", "OpenAIAssistant", "parse_building_analysis"]
