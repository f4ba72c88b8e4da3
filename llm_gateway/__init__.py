"""Optional LLM turn generator."""
from .llm_gateway import HttpClient, HttpResponse, LlmGatewayError, chat, generate_turn

__all__ = ["HttpClient", "HttpResponse", "LlmGatewayError", "chat", "generate_turn"]
