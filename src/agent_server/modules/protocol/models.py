"""
线上协议模型：请求、响应、界面快照、元素信息

编码统一使用 camelCase 别名并省略值为 None 的可选字段（缺省即不出现，而不是 null）。
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .json_value import JsonKind, JsonValue, Params, decode_params


class ProtocolError(ValueError):
    """请求体无法解码为 AgentRequest"""


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class FrameInfo(WireModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class ElementInfo(WireModel):
    identifier: Optional[str] = None
    label: Optional[str] = None
    value: Optional[str] = None
    placeholder_value: Optional[str] = None
    element_type: str = "element"
    frame: FrameInfo = Field(default_factory=FrameInfo)
    is_enabled: bool = True
    is_hittable: bool = True
    is_selected: bool = False
    has_focus: bool = False
    children: Optional[List["ElementInfo"]] = None
    custom_actions: Optional[List[str]] = None


class ScreenState(WireModel):
    elements: List[ElementInfo] = Field(default_factory=list)
    focused_element: Optional[ElementInfo] = None
    alerts: List[ElementInfo] = Field(default_factory=list)
    navigation_bars: List[str] = Field(default_factory=list)
    timestamp: float = 0.0


class AgentResponse(WireModel):
    success: bool
    message: Optional[str] = None
    screen_state: Optional[ScreenState] = None
    matched_element: Optional[ElementInfo] = Field(default=None, alias="tappedElement")
    error: Optional[str] = None
    duration_ms: int = 0

    @classmethod
    def ok(
        cls,
        message: Optional[str] = None,
        screen_state: Optional[ScreenState] = None,
        matched_element: Optional[ElementInfo] = None,
    ) -> "AgentResponse":
        return cls(
            success=True,
            message=message,
            screen_state=screen_state,
            matched_element=matched_element,
        )

    @classmethod
    def failure(cls, error: str, screen_state: Optional[ScreenState] = None) -> "AgentResponse":
        return cls(success=False, error=error, screen_state=screen_state)


class AgentRequest(BaseModel):
    """一次指令请求。

    steps 既可以在顶层给出，也可以嵌在 params.steps 里（历史兼容，两种都要接受）。
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    action: str
    params: Params = Field(default_factory=dict)
    steps: Optional[List["AgentRequest"]] = None
    observe: bool = False

    @field_validator("params", mode="before")
    @classmethod
    def _decode_params(cls, value: Any) -> Params:
        return decode_params(value)

    @field_validator("observe", mode="before")
    @classmethod
    def _null_observe(cls, value: Any) -> Any:
        return False if value is None else value

    @classmethod
    def from_json(cls, body: bytes | str) -> "AgentRequest":
        try:
            data = json.loads(body)
            return cls.model_validate(data)
        except (ValueError, TypeError, ValidationError) as e:
            raise ProtocolError(str(e)) from e

    # ── 参数读取 ──

    def param(self, key: str) -> Optional[JsonValue]:
        return self.params.get(key)

    def string_param(self, key: str) -> Optional[str]:
        v = self.params.get(key)
        return v.string_value if v else None

    def float_param(self, key: str, default: Optional[float] = None) -> Optional[float]:
        v = self.params.get(key)
        got = v.double_value if v else None
        return default if got is None else got

    def int_param(self, key: str, default: Optional[int] = None) -> Optional[int]:
        v = self.params.get(key)
        got = v.int_value if v else None
        return default if got is None else got

    def bool_param(self, key: str, default: bool = False) -> bool:
        v = self.params.get(key)
        got = v.bool_value if v else None
        return default if got is None else got

    def chain_steps(self) -> List["AgentRequest"]:
        """取 chain 的步骤：顶层 steps 非空优先，否则回退 params.steps"""
        if self.steps:
            return list(self.steps)
        nested = self.params.get("steps")
        if nested is None or nested.kind != JsonKind.ARRAY:
            return []
        try:
            return [AgentRequest.model_validate(item.to_python()) for item in nested.value]
        except ValidationError:
            return []

    def to_wire(self) -> Dict[str, Any]:
        """编码为线上格式；params 中的数组/对象按有损规则输出 null"""
        data: Dict[str, Any] = {"action": self.action}
        if self.params:
            data["params"] = {k: v.encode() for k, v in self.params.items()}
        if self.steps is not None:
            data["steps"] = [step.to_wire() for step in self.steps]
        data["observe"] = self.observe
        return data


ElementInfo.model_rebuild()
AgentRequest.model_rebuild()


__all__ = [
    "ProtocolError",
    "FrameInfo",
    "ElementInfo",
    "ScreenState",
    "AgentResponse",
    "AgentRequest",
]
