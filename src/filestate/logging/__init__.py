"""Structured event logging utilities."""

from .events import (
    FILE_UNREADABLE,
    PROOF_FORMAT_UNSUPPORTED,
    STATE_LOAD_FAILED,
    STATE_SAVE_FAILED,
    DetectionEvent,
    EventRecorder,
    EventSink,
    JsonlEventLogger,
    make_event,
    utc_timestamp,
)

__all__ = [
    "DetectionEvent",
    "EventRecorder",
    "EventSink",
    "FILE_UNREADABLE",
    "JsonlEventLogger",
    "PROOF_FORMAT_UNSUPPORTED",
    "STATE_LOAD_FAILED",
    "STATE_SAVE_FAILED",
    "make_event",
    "utc_timestamp",
]
