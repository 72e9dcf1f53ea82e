"""
FSM 状态定义

定义加载策略、加载状态枚举以及 State 基类。
State 子类描述被测系统中的一种状态类型：声明自己的出向转换，
并提供"我是否真的是当前状态"的自检。
"""
import weakref
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

from .exceptions import MissingImplementationError

if TYPE_CHECKING:
    from .engine import FiniteStateMachine
    from .transitions import Transition


class LoadStrategy(str, Enum):
    """状态类型 / 转换集合的加载策略"""
    LAZY = "lazy"      # 按需加载，只加载被请求的内容
    EAGER = "eager"    # 立即加载状态类型及其转换
    FULL = "full"      # 递归加载所有可达的状态类型及其转换


class LoadStatus(str, Enum):
    """注册表中每个状态类型的加载状态"""
    UNLOADED = "unloaded"
    LOADED = "loaded"


class State:
    """
    状态基类

    约定：
    - 可以无参构造
    - model 为指向所属状态机的非持有引用，由状态机设置
    - 子类通过 transitions() 声明出向转换（默认无转换，即终态）
    - 子类必须实现 verify_as_current_state()
    """

    # 声明名称，make_transition_to 按此名称匹配；为空时使用类名
    state_name: str = ""

    def __init__(self) -> None:
        self._model_ref: Optional["weakref.ReferenceType[FiniteStateMachine]"] = None

    @classmethod
    def name(cls) -> str:
        """获取状态类型的声明名称"""
        return cls.state_name or cls.__qualname__

    @classmethod
    def transitions(cls) -> List["Transition"]:
        """声明从该状态类型出发的转换，顺序即声明顺序"""
        return []

    @property
    def model(self) -> Optional["FiniteStateMachine"]:
        """所属状态机；未绑定或状态机已释放时为 None"""
        ref = getattr(self, "_model_ref", None)
        if ref is None:
            return None
        return ref()

    def attach(self, model: "FiniteStateMachine") -> None:
        """绑定所属状态机（仅保存弱引用）"""
        self._model_ref = weakref.ref(model)

    def verify_as_current_state(self) -> bool:
        """
        校验被测系统确实处于该状态

        Returns:
            校验通过返回 True
        """
        raise MissingImplementationError(f"{type(self).__qualname__}.verify_as_current_state")

    def __repr__(self) -> str:
        return f"{type(self).__qualname__}()"


def is_state_type(candidate: Any) -> bool:
    """判断对象是否为 State 子类"""
    return isinstance(candidate, type) and issubclass(candidate, State)
