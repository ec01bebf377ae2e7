"""
指令参数的 JSON 值类型

params 是一个开放的键值包，这里在解码时一次性转成封闭的标签联合
JsonValue{Null, Bool, Number, String, Array, Object}，之后按需取标量。

再编码是有损的：Array / Object 编码为 null，只有标量原样保留。
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class JsonKind(str, Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class JsonValue:
    kind: JsonKind
    value: Any = None

    @classmethod
    def decode(cls, raw: Any) -> "JsonValue":
        """从 json.loads 的结果构造 JsonValue"""
        if isinstance(raw, JsonValue):
            return raw
        if raw is None:
            return cls(JsonKind.NULL)
        # bool 是 int 的子类，必须先判断
        if isinstance(raw, bool):
            return cls(JsonKind.BOOL, raw)
        if isinstance(raw, (int, float)):
            return cls(JsonKind.NUMBER, raw)
        if isinstance(raw, str):
            return cls(JsonKind.STRING, raw)
        if isinstance(raw, (list, tuple)):
            return cls(JsonKind.ARRAY, tuple(cls.decode(item) for item in raw))
        if isinstance(raw, dict):
            return cls(JsonKind.OBJECT, {str(k): cls.decode(v) for k, v in raw.items()})
        raise TypeError(f"不支持的 JSON 值类型: {type(raw).__name__}")

    def encode(self) -> Any:
        """有损编码：非标量一律输出 None"""
        if self.kind in (JsonKind.ARRAY, JsonKind.OBJECT):
            return None
        return self.value

    def to_python(self) -> Any:
        """无损还原为普通 Python 结构"""
        if self.kind == JsonKind.ARRAY:
            return [item.to_python() for item in self.value]
        if self.kind == JsonKind.OBJECT:
            return {k: v.to_python() for k, v in self.value.items()}
        return self.value

    @property
    def string_value(self) -> Optional[str]:
        return self.value if self.kind == JsonKind.STRING else None

    @property
    def double_value(self) -> Optional[float]:
        return float(self.value) if self.kind == JsonKind.NUMBER else None

    @property
    def int_value(self) -> Optional[int]:
        if self.kind != JsonKind.NUMBER:
            return None
        if isinstance(self.value, int):
            return self.value
        return int(self.value) if float(self.value).is_integer() else None

    @property
    def bool_value(self) -> Optional[bool]:
        return self.value if self.kind == JsonKind.BOOL else None

    @property
    def array_value(self) -> Optional[Tuple["JsonValue", ...]]:
        return self.value if self.kind == JsonKind.ARRAY else None


Params = Dict[str, JsonValue]


def decode_params(raw: Any) -> Params:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("params 必须是 JSON 对象")
    return {str(k): JsonValue.decode(v) for k, v in raw.items()}


__all__ = ["JsonKind", "JsonValue", "Params", "decode_params"]
