# core/engine.py
"""
猜数字核心逻辑
状态全部放在显式传递的 GameState 里，这里没有任何模块级的游戏变量；
视图层只负责把事件翻译成这里的函数调用、再把结果渲染出来。
"""
import logging
import random
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MIN = 1
DEFAULT_MAX = 50
DEFAULT_OPTION_COUNT = 5

# 只认 ASCII 数字，可带正负号；不接受 "1_7"、全角数字之类
_INT_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)


class InvalidGuessInput(ValueError):
    """文本输入不是整数或超出范围；状态不变，提示用户重新输入"""

    def __init__(self, message, raw=None):
        super().__init__(message)
        self.message = message
        self.raw = raw


class Outcome(str, Enum):
    TOO_LOW = "low"
    TOO_HIGH = "high"
    CORRECT = "equal"

    @property
    def label(self):
        return _LABELS[self]


_LABELS = {
    Outcome.TOO_LOW: "Too Low ❌",
    Outcome.TOO_HIGH: "Too High ❌",
    Outcome.CORRECT: "Correct 🎉",
}


@dataclass(frozen=True)
class LogEntry:
    attempt_number: int
    guessed_value: int
    outcome: Outcome
    logged_at: datetime


@dataclass
class GameState:
    target: int
    started_at: datetime
    min_value: int = DEFAULT_MIN
    max_value: int = DEFAULT_MAX
    option_count: int = DEFAULT_OPTION_COUNT
    multiple_choice: bool = False
    attempts: int = 0
    finished_at: Optional[datetime] = None
    is_over: bool = False
    log: List[LogEntry] = field(default_factory=list)
    options: List[int] = field(default_factory=list)

    @property
    def last_outcome(self) -> Optional[Outcome]:
        return self.log[0].outcome if self.log else None

    @property
    def message(self) -> str:
        """当前状态提示语"""
        outcome = self.last_outcome
        if outcome is None:
            return "Ready to guess!"
        if outcome is Outcome.CORRECT:
            return f"{outcome.label} You guessed in {self.attempts} tries."
        return outcome.label


def _now(now):
    return now or datetime.now().astimezone()


def generate_random_number(min_value, max_value, rng=None):
    """闭区间 [min_value, max_value] 内均匀取整"""
    rng = rng or random
    return rng.randint(min_value, max_value)


def shuffle(items, rng=None):
    """Fisher–Yates：i 从末尾到 1，与 [0, i] 中均匀选出的 j 交换；原地打乱并返回"""
    rng = rng or random
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
    return items


def generate_option_set(target, k, min_value, max_value, *, rng=None) -> List[int]:
    """
    生成 k 个互不相同的候选数字，必含 target，顺序随机
    重复抽到的数直接丢弃（集合而不是多重集）
    """
    if k > max_value - min_value + 1:
        raise ValueError(f"cannot pick {k} unique options from [{min_value}, {max_value}]")
    picked = {target}
    while len(picked) < k:
        picked.add(generate_random_number(min_value, max_value, rng))
    return shuffle(sorted(picked), rng)


def initialize(min_value=DEFAULT_MIN, max_value=DEFAULT_MAX, *, multiple_choice=False,
               option_count=DEFAULT_OPTION_COUNT, rng=None, now=None) -> GameState:
    """开新局：抽 target、计数清零、日志清空；选择题模式下同时生成第一组选项"""
    if min_value > max_value:
        raise ValueError(f"empty range [{min_value}, {max_value}]")
    if multiple_choice and not (1 <= option_count <= max_value - min_value + 1):
        raise ValueError(f"option_count {option_count} does not fit [{min_value}, {max_value}]")

    state = GameState(
        target=generate_random_number(min_value, max_value, rng),
        started_at=_now(now),
        min_value=min_value,
        max_value=max_value,
        option_count=option_count,
        multiple_choice=multiple_choice,
    )
    if multiple_choice:
        state.options = generate_option_set(state.target, option_count, min_value, max_value, rng=rng)

    logger.debug(f"[guess_number] Secret number (for debugging): {state.target}")
    return state


def add_log_entry(state: GameState, entry: LogEntry):
    # 最新的在最前；不去重、不截断
    state.log.insert(0, entry)
    return entry


def evaluate(state: GameState, guess: int, *, rng=None, now=None) -> Optional[Outcome]:
    """
    判定一次已通过校验的猜测
    游戏已结束时直接忽略，返回 None，任何字段都不变
    """
    if state.is_over:
        return None

    now = _now(now)
    state.attempts += 1

    if guess == state.target:
        outcome = Outcome.CORRECT
        state.is_over = True
        state.finished_at = now
    elif guess > state.target:
        outcome = Outcome.TOO_HIGH
    else:
        outcome = Outcome.TOO_LOW

    if outcome is not Outcome.CORRECT and state.multiple_choice:
        state.options = generate_option_set(
            state.target, state.option_count, state.min_value, state.max_value, rng=rng
        )

    add_log_entry(state, LogEntry(state.attempts, guess, outcome, now))
    return outcome


def parse_guess(raw, min_value=DEFAULT_MIN, max_value=DEFAULT_MAX) -> int:
    """把用户输入解析成整数；非整数或越界都抛 InvalidGuessInput"""
    hint = f"Please enter a valid number between {min_value} and {max_value}."
    if isinstance(raw, bool):
        raise InvalidGuessInput(hint, raw)
    if isinstance(raw, int):
        n = raw
    else:
        text = str(raw if raw is not None else "").strip()
        if not _INT_RE.fullmatch(text):
            raise InvalidGuessInput(hint, raw)
        n = int(text)
    if not (min_value <= n <= max_value):
        raise InvalidGuessInput(hint, raw)
    return n


def submit_text_guess(state: GameState, raw_text, *, rng=None, now=None) -> Optional[Outcome]:
    """文本框提交：先校验再计数，校验失败不记一次尝试"""
    if state.is_over:
        return None
    guess = parse_guess(raw_text, state.min_value, state.max_value)
    return evaluate(state, guess, rng=rng, now=now)


def select_option(state: GameState, value, *, rng=None, now=None) -> Optional[Outcome]:
    """点选卡片：只接受当前展示中的选项，不再做范围校验"""
    if state.is_over:
        return None
    if not state.multiple_choice:
        raise InvalidGuessInput("Multiple-choice mode is not active.", value)
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise InvalidGuessInput("Please pick one of the displayed options.", value) from None
    if n not in state.options:
        raise InvalidGuessInput("Please pick one of the displayed options.", value)
    return evaluate(state, n, rng=rng, now=now)


def reset_game(previous: Optional[GameState] = None, *, multiple_choice=None,
               min_value=None, max_value=None, option_count=None, rng=None, now=None) -> GameState:
    """重开一局；未指定的参数沿用上一局（没有上一局就用默认值）"""
    base = previous
    if multiple_choice is None:
        multiple_choice = base.multiple_choice if base else False
    if min_value is None:
        min_value = base.min_value if base else DEFAULT_MIN
    if max_value is None:
        max_value = base.max_value if base else DEFAULT_MAX
    if option_count is None:
        option_count = base.option_count if base else DEFAULT_OPTION_COUNT
    return initialize(min_value, max_value, multiple_choice=multiple_choice,
                      option_count=option_count, rng=rng, now=now)
