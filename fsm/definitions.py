"""
YAML 模型定义

以声明方式描述状态类型及其出向转换，状态类型、守卫与动作均以导入路径给出，
在对应状态类型首次加载转换时才解析。

示例:
    name: login_flow
    initial_state: app.pages:LoginPage
    states:
      - type: app.pages:LoginPage
        transitions:
          - target: app.pages:HomePage
            when: app.guards:has_credentials
            by: app.actions:submit_login
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from config.settings import settings

from .engine import FiniteStateMachine
from .exceptions import LoadError, ModelDefinitionError
from .graph import TransitionSource, declared_transitions
from .states import LoadStrategy, State, is_state_type
from .transitions import Transition, import_object

logger = logging.getLogger(__name__)


class TransitionDefinition(BaseModel):
    """转换定义"""
    model_config = ConfigDict(extra="forbid")

    target: str = Field(..., description="目标状态类型导入路径")
    name: Optional[str] = Field(default=None, description="目标声明名称，默认取目标状态类型的名称")
    when: Optional[str] = Field(default=None, description="守卫函数导入路径")
    by: Optional[str] = Field(default=None, description="动作函数导入路径")
    priority: int = Field(default=0, description="优先级")
    description: str = Field(default="", description="描述")


class StateDefinition(BaseModel):
    """状态类型定义"""
    model_config = ConfigDict(extra="forbid")

    type: str = Field(..., description="状态类型导入路径")
    transitions: List[TransitionDefinition] = Field(default_factory=list)


class ModelDefinition(BaseModel):
    """模型定义"""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(default="", description="模型名称")
    initial_state: Optional[str] = Field(default=None, description="初始状态类型导入路径")
    states: List[StateDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_states(self) -> "ModelDefinition":
        seen = set()
        for state in self.states:
            if state.type in seen:
                raise ValueError(f"Duplicate state definition: {state.type}")
            seen.add(state.type)
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelDefinition":
        """
        从字典构建模型定义

        Raises:
            ModelDefinitionError: 定义不合法
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ModelDefinitionError(f"Invalid model definition: {exc}", cause=exc) from exc

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ModelDefinition":
        """
        从 YAML 文件加载模型定义

        Args:
            path: YAML 文件路径

        Returns:
            ModelDefinition 对象

        Raises:
            ModelDefinitionError: 文件不存在、解析失败或定义不合法
        """
        path = Path(path)
        if not path.exists():
            raise ModelDefinitionError(f"Model definition not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ModelDefinitionError(f"Cannot parse {path}: {exc}", cause=exc) from exc

        if not isinstance(data, dict):
            raise ModelDefinitionError(f"Model definition must be a mapping: {path}")

        definition = cls.from_dict(data)
        logger.info("Loaded model definition %s (%d states) from %s",
                    definition.name or "<unnamed>", len(definition.states), path)
        return definition

    def transition_source(self) -> TransitionSource:
        """
        构建供 Graph 使用的转换来源

        未在定义中声明的状态类型回退到其自身的 transitions()。
        查找时先按导入路径文本匹配；匹配不到时只导入名称相同的条目
        （处理再导出的别名路径），无法导入或不是 State 子类的条目跳过。
        """
        resolved: Dict[str, Optional[Type[State]]] = {}

        def resolve(path: str) -> Optional[Type[State]]:
            if path not in resolved:
                try:
                    candidate = import_object(path)
                except LoadError as exc:
                    logger.warning("Skipping unresolvable state definition %s: %s", path, exc)
                    candidate = None
                resolved[path] = candidate if is_state_type(candidate) else None
            return resolved[path]

        def find(state_type: Type[State]) -> Optional[StateDefinition]:
            paths = state_paths(state_type)
            for state in self.states:
                if state.type in paths:
                    return state
            suffixes = (":" + state_type.__qualname__, "." + state_type.__qualname__)
            for state in self.states:
                if state.type.endswith(suffixes) and resolve(state.type) is state_type:
                    return state
            return None

        def source(state_type: Type[State]) -> List[Transition]:
            state = find(state_type)
            if state is None:
                return list(declared_transitions(state_type))
            return [build_transition(state_type, item) for item in state.transitions]

        return source

    def build_fsm(
        self,
        strategy: LoadStrategy = LoadStrategy.LAZY,
        **fsm_kwargs: Any,
    ) -> FiniteStateMachine:
        """构建与该定义绑定的状态机，并进入初始状态（如有）"""
        fsm = FiniteStateMachine(transition_source=self.transition_source(), **fsm_kwargs)
        if self.initial_state:
            fsm.use_state_type(self.initial_state, strategy=strategy)
        return fsm


def state_paths(state_type: Type[State]) -> Tuple[str, str]:
    """状态类型的规范导入路径（冒号与点号两种写法）"""
    module, qualname = state_type.__module__, state_type.__qualname__
    return f"{module}:{qualname}", f"{module}.{qualname}"


def build_transition(source_type: Type[State], item: TransitionDefinition) -> Transition:
    """根据定义构建 Transition，守卫与动作在此时导入"""
    kwargs: Dict[str, Any] = {
        "target": item.target,
        "source_type": source_type,
        "name": item.name or "",
        "priority": item.priority,
        "description": item.description,
    }
    if item.when:
        kwargs["when"] = import_object(item.when)
    if item.by:
        kwargs["by"] = import_object(item.by)
    return Transition(**kwargs)


def load_definition(path: Optional[Union[str, Path]] = None) -> ModelDefinition:
    """加载模型定义，未指定路径时使用全局配置 MODEL_DEFINITION_PATH"""
    path = path or settings.MODEL_DEFINITION_PATH
    if path is None:
        raise ModelDefinitionError("No model definition path configured")
    return ModelDefinition.from_yaml(path)
