"""
Pytest 配置：确保项目根目录在导入路径中，并提供通用的状态机夹具。
"""
import os
import sys

import pytest

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(PROJECT_ROOT, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture
def machine():
    """使用 first_match 选择策略、不等待驱动的状态机"""
    from config.model_config import ModelConfig
    from fsm.engine import FiniteStateMachine
    from fsm.strategies import first_match

    return FiniteStateMachine(
        config=ModelConfig(id="test-machine", class_name="FiniteStateMachine"),
        selection_strategy=first_match,
        driver_wait_ms=0,
    )
