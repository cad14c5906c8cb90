"""Services for the Carl assistant orchestrator."""
from .errors import (
    AssistantError,
    ChannelUnavailableError,
    DecodeError,
    InvalidEndpointError,
    UpstreamHTTPError,
    UpstreamUnavailableError,
)
from .pii_sanitizer import sanitize
from .crisis_classifier import CrisisClassifier
from .quick_answers import QuickAnswerMatcher
from .privacy_resolver import Channel, EndpointDescriptor, PrivacyMode, PrivacyResolver
from .llm_client import LLMClient, LLMResponse
from .intent_parser import IntentParser
from .search_client import ProgramSearchClient
from .response_composer import ResponseComposer
from .output_evaluator import OutputEvaluator
from .assistant_orchestrator import AssistantOrchestrator, SessionState

__all__ = [
    'AssistantError', 'ChannelUnavailableError', 'DecodeError', 'InvalidEndpointError',
    'UpstreamHTTPError', 'UpstreamUnavailableError', 'sanitize', 'CrisisClassifier',
    'QuickAnswerMatcher', 'Channel', 'EndpointDescriptor', 'PrivacyMode', 'PrivacyResolver',
    'LLMClient', 'LLMResponse', 'IntentParser', 'ProgramSearchClient', 'ResponseComposer',
    'OutputEvaluator', 'AssistantOrchestrator', 'SessionState',
]
