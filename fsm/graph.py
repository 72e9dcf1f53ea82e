"""
FSM 图模型

核心职责：
1. 维护 状态类型 -> 出向转换序列 的注册表
2. 分别记录状态类型与转换集合的加载状态
3. 提供按需（延迟）加载的原语

设计原则：
- 注册表归实例所有，不同实例之间互不共享
- 加载是幂等的：已加载的内容不会重复加载
- 拓扑由模型作者声明，引擎不做探测
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, Union

from config.logging_config import ModelLoggerAdapter
from config.model_config import ModelConfig

from .exceptions import LoadError
from .states import LoadStatus, LoadStrategy, State, is_state_type
from .transitions import Transition, import_object

TransitionSource = Callable[[Type[State]], Iterable[Transition]]
StateTypeSpec = Union[Type[State], str]


def declared_transitions(state_type: Type[State]) -> Iterable[Transition]:
    """默认的转换来源：状态类型自身声明的 transitions()"""
    return state_type.transitions()


class Graph:
    """
    状态图

    只描述拓扑，不持有当前状态。FiniteStateMachine 在此基础上增加执行能力。
    """

    def __init__(
        self,
        config: Optional[ModelConfig] = None,
        transition_source: Optional[TransitionSource] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化图模型

        Args:
            config: 实例配置，默认生成新的 ModelConfig
            transition_source: 状态类型 -> 转换序列 的来源，默认读取状态类型的 transitions()
            logger: 日志记录器，默认使用模块 logger
        """
        if config is not None and not isinstance(config, ModelConfig):
            raise TypeError("config must be a ModelConfig instance")
        self.config = config or ModelConfig(class_name=type(self).__name__)
        self.transition_source = transition_source or declared_transitions
        self.logger = ModelLoggerAdapter(
            logger or logging.getLogger(type(self).__module__), self.config.id, self.config.level_number
        )

        self.transitions: Dict[Type[State], List[Transition]] = {}
        self._state_status: Dict[Type[State], LoadStatus] = {}
        self._transition_status: Dict[Type[State], LoadStatus] = {}

    @property
    def graph_id(self) -> str:
        return self.config.id

    def state_loaded(self, state_type: Type[State]) -> bool:
        """状态类型是否已加载"""
        return self._state_status.get(state_type, LoadStatus.UNLOADED) == LoadStatus.LOADED

    def transitions_loaded(self, state_type: Type[State]) -> bool:
        """状态类型的转换集合是否已加载"""
        return self._transition_status.get(state_type, LoadStatus.UNLOADED) == LoadStatus.LOADED

    def _resolve_state_type(self, state_type: StateTypeSpec) -> Type[State]:
        resolved: Any = import_object(state_type) if isinstance(state_type, str) else state_type
        if not is_state_type(resolved):
            raise LoadError(f"{state_type!r} is not a State type")
        return resolved

    def load_state_type(
        self,
        state_type: StateTypeSpec,
        strategy: LoadStrategy = LoadStrategy.LAZY,
    ) -> Type[State]:
        """
        加载状态类型

        Args:
            state_type: State 子类或其导入路径
            strategy: 加载策略；EAGER / FULL 会继续加载转换

        Returns:
            已加载的状态类型

        Raises:
            LoadError: 无法解析为 State 子类
        """
        strategy = LoadStrategy(strategy)
        resolved = self._resolve_state_type(state_type)

        if not self.state_loaded(resolved):
            self.transitions.setdefault(resolved, [])
            self._state_status[resolved] = LoadStatus.LOADED
            self.logger.debug("Loaded state type %s", resolved.name())

        if strategy != LoadStrategy.LAZY:
            self.load_transitions(resolved, strategy=strategy)
        return resolved

    def load_transitions(
        self,
        state_type: StateTypeSpec,
        strategy: LoadStrategy = LoadStrategy.LAZY,
    ) -> List[Transition]:
        """
        加载状态类型的出向转换，保持声明顺序

        Args:
            state_type: State 子类或其导入路径
            strategy: 加载策略；FULL 会递归加载所有目标状态类型

        Returns:
            该状态类型的转换序列

        Raises:
            LoadError: 转换来源失败或返回了非 Transition 对象
        """
        strategy = LoadStrategy(strategy)
        resolved = self._resolve_state_type(state_type)
        if not self.state_loaded(resolved):
            self.load_state_type(resolved)

        if not self.transitions_loaded(resolved):
            try:
                declared = list(self.transition_source(resolved))
            except LoadError:
                raise
            except Exception as exc:
                self.logger.error("Transition source failed for %s: %s", resolved.name(), exc)
                raise LoadError(
                    f"Failed to load transitions for {resolved.name()}: {exc}", cause=exc
                ) from exc

            for item in declared:
                if not isinstance(item, Transition):
                    raise LoadError(
                        f"{resolved.name()} declared a non-Transition entry: {item!r}"
                    )
            self.transitions[resolved] = declared
            self._transition_status[resolved] = LoadStatus.LOADED
            self.logger.debug(
                "Loaded %d transition(s) for %s", len(declared), resolved.name()
            )

        if strategy == LoadStrategy.FULL:
            self._load_reachable(resolved)
        return self.transitions[resolved]

    def _load_reachable(self, start: Type[State]) -> None:
        """从 start 出发广度优先加载所有可达状态类型及其转换"""
        pending = [start]
        seen = {start}
        while pending:
            current = pending.pop(0)
            self.load_transitions(current)
            for transition in self.transitions[current]:
                target = transition.target_type
                if target not in seen:
                    seen.add(target)
                    pending.append(target)

    def transitions_for(self, state_type: Type[State]) -> List[Transition]:
        """获取已加载的转换序列（副本）"""
        return list(self.transitions.get(state_type, []))

    def state_types(self) -> List[Type[State]]:
        """按加载顺序返回已加载的状态类型"""
        return [
            state_type
            for state_type, status in self._state_status.items()
            if status == LoadStatus.LOADED
        ]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.graph_id}, states={len(self.state_types())})"
