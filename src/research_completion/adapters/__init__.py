"""
Generation capabilities for local model servers
"""

from .ollama import OllamaGenerator, build_chat_payload

__all__ = ["OllamaGenerator", "build_chat_payload"]
