"""
Content providers (LLM, mock, offline) and the gateway that routes between them.
"""
from .llm_client import LLMClient, parse_json_payload, coerce_difficulty
from .mock import MockGenerator
from .offline import OfflineGenerator
from .gateway import ProviderGateway

__all__ = [
	'LLMClient',
	'parse_json_payload',
	'coerce_difficulty',
	'MockGenerator',
	'OfflineGenerator',
	'ProviderGateway',
]
