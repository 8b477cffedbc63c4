"""Nested repeat iteration over bounded loop variables.

A template element carries zero or more repeat levels. Each level binds one
loop variable over an inclusive integer range; several levels form a
cartesian product, first-declared level varying slowest.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence

from trellis.errors import TrellisError
from trellis.schema import RepeatSpec


class RepeatError(TrellisError):
    """Raised when a repeat level has no usable upper bound."""

    def __init__(self, var: str, message: str) -> None:
        self.var = var
        super().__init__(message)


def repeat_upper_bound(level: RepeatSpec, env: Mapping[str, int]) -> int:
    """Resolve the inclusive upper bound for *level* against *env*."""
    if level.to is not None:
        return level.to
    if level.to_var:
        if level.to_var not in env:
            raise RepeatError(level.var, f"variable '{level.to_var}' not defined for repeat bound")
        return env[level.to_var]
    raise RepeatError(level.var, f"repeat for '{level.var}' has no 'to' or 'to_var'")


def iter_repeat_envs(repeats: Sequence[RepeatSpec], base_env: Mapping[str, int]) -> Iterator[dict[str, int]]:
    """Yield one environment per combination of repeat variables.

    With no repeat levels a single copy of *base_env* is yielded. Each yielded
    dict is a fresh copy; mutating it never leaks into sibling combinations.
    Bounds of inner levels are resolved lazily, so an inner level may refer to
    an outer loop variable (``to_var: "i"``).
    """
    if not repeats:
        yield dict(base_env)
        return
    yield from _iter_level(repeats, 0, base_env)


def _iter_level(repeats: Sequence[RepeatSpec], level: int, env: Mapping[str, int]) -> Iterator[dict[str, int]]:
    if level >= len(repeats):
        yield dict(env)
        return
    spec = repeats[level]
    upper = repeat_upper_bound(spec, env)
    for value in range(spec.start, upper + 1):
        loop_env = dict(env)
        loop_env[spec.var] = value
        yield from _iter_level(repeats, level + 1, loop_env)


def iterate_repeats(
    repeats: Sequence[RepeatSpec],
    base_env: Mapping[str, int],
    fn: Callable[[dict[str, int]], None],
) -> int:
    """Invoke *fn* once per repeat combination. Returns the number of calls."""
    count = 0
    for env in iter_repeat_envs(repeats, base_env):
        fn(env)
        count += 1
    return count
