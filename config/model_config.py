"""
模型实例配置

每个 Graph / FSM 实例持有一个 ModelConfig，id 用于标记日志和追踪实例。
"""
import logging
import uuid
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

VALID_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class ModelConfig(BaseModel):
    """模型实例配置"""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="实例标识")
    log_level: str = Field(default="ERROR", description="实例日志级别")
    flags: Dict[str, Any] = Field(default_factory=dict, description="任意开关")
    class_name: Optional[str] = Field(default=None, description="模型类名")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> str:
        if value is None:
            return "ERROR"
        level = str(value).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def level_number(self) -> int:
        return logging.getLevelName(self.log_level)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "log_level": self.log_level,
            "flags": dict(self.flags),
            "class_name": self.class_name,
        }

    def __str__(self) -> str:
        lines = [
            f"Id: {self.id}",
            f"Class Name: {self.class_name}",
            f"Log Level: {self.log_level}",
            "Flags:",
        ]
        lines.extend(f"{key}  => {value}" for key, value in self.flags.items())
        return "\n".join(lines)
