"""
模型驱动执行引擎

将被测系统描述为由状态类型和转换组成的有向图，
由有限状态机从当前状态出发反复选择并执行有效转换。

使用示例:
    from fsm import FSM, State, Transition, first_match

    class Home(State):
        def verify_as_current_state(self):
            return True

    class Login(State):
        @classmethod
        def transitions(cls):
            return [Transition(target=Home, source_type=cls, by=submit)]

        def verify_as_current_state(self):
            return True

    machine = FSM(selection_strategy=first_match)
    machine.use_state_type(Login)
    machine.make_transition_to(Home, username="alice")
"""

from .exceptions import (
    ModelerError,
    NoCurrentStateError,
    LoadError,
    ModelDefinitionError,
    MissingImplementationError,
    TransitionFailedError,
    ArgumentContractError,
    NoValidTransitionError,
    AmbiguousTransitionError,
)

from .states import LoadStrategy, LoadStatus, State

from .transitions import Transition, import_object

from .graph import Graph

from .engine import FiniteStateMachine, FSM, Driver

from .strategies import (
    first_match,
    only_one,
    highest_priority,
    random_choice,
)

from .definitions import ModelDefinition, load_definition

__version__ = "1.0.0"

__all__ = [
    # 核心类
    "Graph",
    "FiniteStateMachine",
    "FSM",
    "State",
    "Transition",
    "Driver",
    # 枚举
    "LoadStrategy",
    "LoadStatus",
    # 选择策略
    "first_match",
    "only_one",
    "highest_priority",
    "random_choice",
    # 模型定义
    "ModelDefinition",
    "load_definition",
    "import_object",
    # 异常
    "ModelerError",
    "NoCurrentStateError",
    "LoadError",
    "ModelDefinitionError",
    "MissingImplementationError",
    "TransitionFailedError",
    "ArgumentContractError",
    "NoValidTransitionError",
    "AmbiguousTransitionError",
]
