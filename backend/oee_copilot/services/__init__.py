from .status_log import StatusLogEntry, InvalidStatusLogEntry
from .aggregation import OEESnapshot, EquipmentAggregate, FailureReasonTotal, summarize
from .topic_classifier import Topic, KeywordTopicClassifier
from .chart_builder import ChartSpec, build_chart
from .response_templates import render_response
from .llm_responder import LLMResponder, GenerativeResponseError
from .data_store import DataStore, StoreError
from .ingestion import IngestionResult, IngestionError, parse_status_log_csv
from .chat_service import ChatService, ChatResult, ChatRequestError, ChatPipelineError

__all__ = [
    "StatusLogEntry",
    "InvalidStatusLogEntry",
    "OEESnapshot",
    "EquipmentAggregate",
    "FailureReasonTotal",
    "summarize",
    "Topic",
    "KeywordTopicClassifier",
    "ChartSpec",
    "build_chart",
    "render_response",
    "LLMResponder",
    "GenerativeResponseError",
    "DataStore",
    "StoreError",
    "IngestionResult",
    "IngestionError",
    "parse_status_log_csv",
    "ChatService",
    "ChatResult",
    "ChatRequestError",
    "ChatPipelineError",
]
