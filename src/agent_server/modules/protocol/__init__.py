from .json_value import JsonKind, JsonValue, Params, decode_params
from .models import (
    AgentRequest,
    AgentResponse,
    ElementInfo,
    FrameInfo,
    ProtocolError,
    ScreenState,
)

__all__ = [
    "JsonKind",
    "JsonValue",
    "Params",
    "decode_params",
    "AgentRequest",
    "AgentResponse",
    "ElementInfo",
    "FrameInfo",
    "ProtocolError",
    "ScreenState",
]
