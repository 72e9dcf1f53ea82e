"""
FSM 引擎

核心职责：
1. 持有唯一的当前状态实例
2. 执行五阶段转换流程：读取 -> 预过滤 -> 校验 -> 选择 -> 执行
3. 转换执行后通知驱动等待，并校验新状态

设计原则：
- 所有错误直接上报，不做内部重试
- 选择策略与预过滤规则通过注入函数提供（也可由子类覆盖）
- 校验失败时当前状态已前进到未通过校验的新状态（非原子）
"""
import logging
from typing import Any, Callable, List, Optional, Protocol, Type, TypeVar, Union

from config.model_config import ModelConfig
from config.settings import settings

from .exceptions import (
    ArgumentContractError,
    MissingImplementationError,
    NoCurrentStateError,
    TransitionFailedError,
)
from .graph import Graph, StateTypeSpec, TransitionSource
from .states import LoadStrategy, State, is_state_type
from .transitions import Transition

T = TypeVar("T")

SelectionStrategy = Callable[[List[Transition]], Transition]
TransitionPredicate = Callable[[Transition], bool]


class Driver(Protocol):
    """被测系统驱动（如浏览器驱动），转换执行后需要等待其就绪"""

    def wait(self, timeout_ms: int) -> Any:
        ...


class FiniteStateMachine(Graph):
    """
    有限状态机

    在 Graph 的基础上增加"当前状态"，使状态类型可以实例化、转换可以执行。
    """

    def __init__(
        self,
        config: Optional[ModelConfig] = None,
        selection_strategy: Optional[SelectionStrategy] = None,
        prefilter: Optional[TransitionPredicate] = None,
        driver: Optional[Driver] = None,
        driver_wait_ms: Optional[int] = None,
        transition_source: Optional[TransitionSource] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化状态机

        Args:
            config: 实例配置
            selection_strategy: 从候选转换中选出唯一一个的策略函数
            prefilter: 模型级预过滤规则，返回 False 的转换被剔除
            driver: 可选的被测系统驱动
            driver_wait_ms: 等待驱动就绪的最长时间，默认取全局配置
            transition_source: 转换来源，见 Graph
            logger: 日志记录器
        """
        super().__init__(config=config, transition_source=transition_source, logger=logger)
        self._selection_strategy = selection_strategy
        self._prefilter = prefilter
        self.driver = driver
        self.driver_wait_ms = settings.DRIVER_WAIT_MS if driver_wait_ms is None else driver_wait_ms
        self._current_state: Optional[State] = None

    # ------------------------------------------------------------------
    # 当前状态
    # ------------------------------------------------------------------

    @property
    def current_state(self) -> Optional[State]:
        return self._current_state

    def with_current_state(self, fn: Callable[[Optional[State]], T]) -> T:
        """将 fn 应用于当前状态并返回其结果"""
        return fn(self._current_state)

    def new_state_instance(self, state_type: Type[State]) -> State:
        """
        实例化状态类型并绑定到本状态机

        子类可覆盖以适配需要构造参数的状态类型。
        """
        instance = state_type()
        instance.attach(self)
        return instance

    def use_state_type(
        self,
        state_type: StateTypeSpec,
        strategy: LoadStrategy = LoadStrategy.LAZY,
    ) -> State:
        """
        切换当前状态为指定状态类型的新实例

        Args:
            state_type: 状态类型（未加载时按 strategy 加载）
            strategy: 加载策略

        Returns:
            新的当前状态
        """
        if not (is_state_type(state_type) and self.state_loaded(state_type)):  # type: ignore[arg-type]
            state_type = self.load_state_type(state_type, strategy=strategy)
        self._current_state = self.new_state_instance(state_type)  # type: ignore[arg-type]
        return self._current_state

    def reset(self) -> None:
        """清除当前状态，保留已加载的注册表"""
        self._current_state = None

    # ------------------------------------------------------------------
    # 转换流程
    # ------------------------------------------------------------------

    def make_transition(
        self,
        strategy: LoadStrategy = LoadStrategy.LAZY,
        prefilter: Optional[TransitionPredicate] = None,
        **context: Any,
    ) -> State:
        """
        从当前状态执行一次转换

        五个阶段：
        - 读取：当前状态类型的全部转换（未加载时先加载）
        - 预过滤：调用方谓词 + 模型级 passes_prefilter
        - 校验：守卫条件在当前状态和上下文下成立
        - 选择：selection_strategy 选出唯一转换
        - 执行：execute_transition

        Args:
            strategy: 当前状态类型转换集合的加载策略
            prefilter: 调用方提供的额外过滤谓词
            **context: 传给守卫和动作的上下文

        Returns:
            新的当前状态

        Raises:
            NoCurrentStateError: 没有当前状态
        """
        if self._current_state is None:
            raise NoCurrentStateError()

        state_type = type(self._current_state)
        if not self.transitions_loaded(state_type):
            self.load_transitions(state_type, strategy=strategy)
        all_transitions = self.transitions[state_type]

        prefiltered = self.prefiltered_transitions(all_transitions, prefilter)
        valid = self.valid_transitions(prefiltered, **context)
        self.logger.debug(
            "From %s: %d declared, %d prefiltered, %d valid",
            state_type.name(), len(all_transitions), len(prefiltered), len(valid),
        )
        to_execute = self.selection_strategy(valid)
        return self.execute_transition(to_execute, **context)

    def make_transition_to(
        self,
        target: Union[Type[State], str],
        strategy: LoadStrategy = LoadStrategy.LAZY,
        prefilter: Optional[TransitionPredicate] = None,
        **context: Any,
    ) -> State:
        """
        执行一次指向指定目标的转换

        Args:
            target: 目标状态类型或其名称
            strategy: 加载策略
            prefilter: 额外过滤谓词
            **context: 传给守卫和动作的上下文

        Returns:
            新的当前状态
        """
        name = target_name_of(target)

        def targets_name(transition: Transition) -> bool:
            return transition.target_name == name and _matches(transition, prefilter)

        return self.make_transition(strategy=strategy, prefilter=targets_name, **context)

    def execute_transition(self, transition: Transition, **context: Any) -> State:
        """
        执行指定转换

        Raises:
            ArgumentContractError: transition 不是 Transition 实例
            TransitionFailedError: 新状态未通过自检（当前状态已前进）
        """
        if not isinstance(transition, Transition):
            raise ArgumentContractError(
                f"Must be called with a Transition instance, got {type(transition).__name__}"
            )

        source = self._current_state
        transition.execute(source, **context)
        new_state = self.use_state_type(transition.target_type)

        if self.driver is not None:
            self.driver.wait(self.driver_wait_ms)

        if new_state.verify_as_current_state():
            self.logger.info(
                "Transitioned %s -> %s",
                type(source).__qualname__ if source is not None else None,
                transition.target_name,
            )
            return new_state

        self.logger.warning("Failed to verify %s as current state", transition.target_name)
        raise TransitionFailedError(new_state)

    def prefiltered_transitions(
        self,
        transitions: List[Transition],
        prefilter: Optional[TransitionPredicate] = None,
    ) -> List[Transition]:
        """保留通过调用方谓词和模型级预过滤的转换，顺序不变"""
        return [
            transition
            for transition in transitions
            if _matches(transition, prefilter) and self.passes_prefilter(transition)
        ]

    def passes_prefilter(self, transition: Transition) -> bool:
        """模型级预过滤，未提供规则时全部接受"""
        if self._prefilter is None:
            return True
        return bool(self._prefilter(transition))

    def valid_transitions(self, transitions: List[Transition], **context: Any) -> List[Transition]:
        """
        保留守卫条件成立的转换

        Raises:
            NoCurrentStateError: 没有当前状态
        """
        if self._current_state is None:
            raise NoCurrentStateError()
        state = self._current_state
        return [transition for transition in transitions if transition.valid_for(state, **context)]

    def selection_strategy(self, candidates: List[Transition]) -> Transition:
        """
        从候选转换中选出要执行的一个

        Raises:
            MissingImplementationError: 未提供选择策略
        """
        if self._selection_strategy is None:
            raise MissingImplementationError("selection_strategy")
        return self._selection_strategy(candidates)

    def __repr__(self) -> str:
        current = type(self._current_state).__qualname__ if self._current_state else None
        return f"{type(self).__name__}(id={self.graph_id}, current={current})"


def target_name_of(target: Union[Type[State], str]) -> str:
    """将目标状态类型或名称统一为声明名称"""
    if is_state_type(target):
        return target.name()  # type: ignore[union-attr]
    if isinstance(target, str):
        return target
    raise ArgumentContractError(f"Target must be a State type or name, got {target!r}")


def _matches(transition: Transition, predicate: Optional[TransitionPredicate]) -> bool:
    return predicate is None or bool(predicate(transition))


FSM = FiniteStateMachine
