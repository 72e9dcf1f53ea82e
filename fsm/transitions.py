"""
FSM 转换定义

Transition 描述一条有向边：源状态类型、目标状态类型（可延迟绑定）、
守卫条件 (when) 和执行动作 (by)。构造后不可变。
"""
import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Type, Union

from .exceptions import LoadError
from .states import State, is_state_type

logger = logging.getLogger(__name__)

Guard = Callable[..., bool]
Action = Callable[..., Any]
TargetSpec = Union[Type[State], str]


def import_object(path: str) -> Any:
    """
    按路径导入对象

    支持 "package.module:Name" 和 "package.module.Name" 两种写法。

    Args:
        path: 对象路径

    Returns:
        导入的对象

    Raises:
        LoadError: 模块或属性不存在
    """
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")
    if not module_name or not attr_path:
        raise LoadError(f"Invalid import path: {path!r}")

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise LoadError(f"Cannot import module {module_name!r} for {path!r}", cause=exc) from exc

    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as exc:
            raise LoadError(f"Cannot resolve {attr!r} in {path!r}", cause=exc) from exc
    return obj


def _always(state: State, **context: Any) -> bool:
    return True


def _noop(state: State, **context: Any) -> None:
    return None


@dataclass(frozen=True)
class Transition:
    """状态转换"""
    target: TargetSpec
    when: Guard = _always
    by: Action = _noop
    source_type: Optional[Type[State]] = None
    name: str = ""  # 显式声明的目标名称，为空时取目标状态类型的 name()
    priority: int = 0  # 优先级，数字越大优先级越高
    description: str = ""
    _resolved: list = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self):
        if not (is_state_type(self.target) or isinstance(self.target, str)):
            raise TypeError(
                f"Transition target must be a State subclass or import path, got {self.target!r}"
            )

    @property
    def target_name(self) -> str:
        """
        目标声明名称

        未显式给出 name 时取目标状态类型的 name()，字符串目标会在此时解析。

        Raises:
            LoadError: 目标无法解析为 State 子类
        """
        return self.name or self.target_type.name()

    @property
    def target_type(self) -> Type[State]:
        """
        目标状态类型（首次访问时解析并缓存）

        Raises:
            LoadError: 目标无法解析为 State 子类
        """
        if not self._resolved:
            target = self.target
            if isinstance(target, str):
                logger.debug("Resolving transition target %s", target)
                target = import_object(target)
            if not is_state_type(target):
                raise LoadError(f"Transition target {self.target!r} is not a State type")
            self._resolved.append(target)
        return self._resolved[0]

    def valid_for(self, state: State, **context: Any) -> bool:
        """检查该转换在当前状态和上下文下是否可用"""
        return bool(self.when(state, **context))

    def execute(self, state: State, **context: Any) -> None:
        """执行转换动作"""
        self.by(state, **context)

    def __repr__(self) -> str:
        source = self.source_type.name() if self.source_type else "?"
        if self.name:
            target = self.name
        elif is_state_type(self.target) or self._resolved:
            target = self.target_type.name()
        else:
            target = self.target
        return f"Transition({source} -> {target})"
