"""
Staged pipeline executor.

A Job owns one initializer and an ordered list of steps. Running it calls the
initializer with the job state and threads the resulting value through every
step in registration order. Step callables may be plain functions or
coroutine functions.
"""

import functools
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Generic, List, Mapping, Optional, Sequence, TypeVar, Union
from tqdm import tqdm
from .errors import NotInitialized, TypeMismatch
from .terminal import console
from . import storage

logger = logging.getLogger(__name__)

S = TypeVar("S")

MaybeAwaitable = Union[Any, Awaitable[Any]]
Init = Callable[[S], MaybeAwaitable]
Sink = Callable[[Any, str], MaybeAwaitable]


class StepKind(str, Enum):
    WHOLE = "whole"
    SLICED = "sliced"
    EACH = "each"
    EACH_FILTERED = "each_filtered"
    SAVE = "save"


@dataclass(frozen=True)
class Step:
    """One registered pipeline step; the executor dispatches on `kind`."""
    kind: StepKind
    fn: Callable[..., Any]
    name: str
    slice_size: int = 0
    filename: Optional[str] = None


async def _resolve(value: MaybeAwaitable) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _is_sequence(data: Any) -> bool:
    return isinstance(data, Sequence) and not isinstance(data, (str, bytes, bytearray))


def _entries(data: Any):
    """(key, value) pairs of a mapping or sequence, in source order."""
    if isinstance(data, Mapping):
        return list(data.items())
    if _is_sequence(data):
        return list(enumerate(data))
    raise TypeMismatch(f"Expected a sequence or mapping, got {type(data).__name__}")


class Job(Generic[S]):
    """Chainable pipeline builder and executor."""

    def __init__(
        self,
        init: Optional[Init],
        state: S,
        output_dir: Optional[Union[str, Path]] = None,
        verbose: bool = True
    ):
        self.init = init
        self.state = state
        self.output_dir = Path(output_dir) if output_dir else None
        self.verbose = verbose
        self.steps: List[Step] = []

    def _add(self, step: Step) -> "Job[S]":
        self.steps.append(step)
        return self

    def pipe(self, fn: Callable[[Any, S], MaybeAwaitable]) -> "Job[S]":
        """Append a step that receives the whole data value."""
        return self._add(Step(StepKind.WHOLE, fn, getattr(fn, "__name__", "pipe")))

    def pipe_sliced(self, fn: Callable[[List[Any], int, S], MaybeAwaitable], slice_size: int) -> "Job[S]":
        """
        Append a step invoked once per fixed-size window of the data.

        The step receives (window, offset, state) and must return a list,
        which is flattened into the output. Returning None contributes nothing.
        """
        if slice_size <= 0:
            raise ValueError("slice_size must be positive")
        return self._add(Step(StepKind.SLICED, fn, getattr(fn, "__name__", "pipe_sliced"), slice_size=slice_size))

    def pipe_each(self, fn: Callable[[Any, S, Any], MaybeAwaitable]) -> "Job[S]":
        """Append a step invoked as fn(item, state, key) for every entry."""
        return self._add(Step(StepKind.EACH, fn, getattr(fn, "__name__", "pipe_each")))

    def pipe_each_filtered(self, fn: Callable[[Any, S, Any], MaybeAwaitable]) -> "Job[S]":
        """Like pipe_each, but falsy results are dropped."""
        return self._add(Step(StepKind.EACH_FILTERED, fn, getattr(fn, "__name__", "pipe_each_filtered")))

    def sort(self, comparator: Callable[[Any, Any], int]) -> "Job[S]":
        """Sort the current list in place with a negative/zero/positive comparator."""
        key = functools.cmp_to_key(comparator)

        def sort_step(data, _state):
            if not isinstance(data, list):
                raise TypeMismatch(f"Cannot sort {type(data).__name__}")
            data.sort(key=key)
            return data

        return self._add(Step(StepKind.WHOLE, sort_step, "sort"))

    def save_as(self, filename: str, sink: Optional[Sink] = None) -> "Job[S]":
        """
        Append a checkpoint that persists the current data and passes it on.

        Args:
            filename: Name of the artifact; the extension picks the format
            sink: Optional replacement for the default file writer, called as sink(data, filename)
        """
        return self._add(Step(StepKind.SAVE, sink or self._write_checkpoint, "save_as", filename=filename))

    def _write_checkpoint(self, data: Any, filename: str) -> None:
        if self.output_dir is None:
            from .config import Settings
            self.output_dir = Settings.from_env().output_dir
        path = storage.save_checkpoint(data, self.output_dir / filename)
        if self.verbose:
            console.print(f"Saved to {path}", markup=False)

    async def run(self) -> Any:
        """Run the initializer and then every step in order."""
        if self.init is None:
            raise NotInitialized("Job has no initializer")

        data = await _resolve(self.init(self.state))
        for i, step in enumerate(self.steps, 1):
            logger.debug("Step %d/%d: %s (%s)", i, len(self.steps), step.name, step.kind.value)
            data = await self._run_step(step, data)
        return data

    async def _run_step(self, step: Step, data: Any) -> Any:
        if step.kind is StepKind.WHOLE:
            return await _resolve(step.fn(data, self.state))
        if step.kind is StepKind.SLICED:
            return await self._run_sliced(step, data)
        if step.kind is StepKind.EACH:
            return [await _resolve(step.fn(value, self.state, key)) for key, value in _entries(data)]
        if step.kind is StepKind.EACH_FILTERED:
            results = []
            for key, value in _entries(data):
                result = await _resolve(step.fn(value, self.state, key))
                if result:
                    results.append(result)
            return results
        if step.kind is StepKind.SAVE:
            await _resolve(step.fn(data, step.filename))
            return data
        raise TypeMismatch(f"Unknown step kind: {step.kind}")

    async def _run_sliced(self, step: Step, data: Any) -> List[Any]:
        if not _is_sequence(data):
            raise TypeMismatch(f"Sliced step needs a sequence, got {type(data).__name__}")

        results: List[Any] = []
        size = step.slice_size
        with tqdm(total=len(data), desc=step.name, disable=not self.verbose) as progress:
            for offset in range(0, len(data), size):
                window = list(data[offset:offset + size])
                result = await _resolve(step.fn(window, offset, self.state))
                if result is not None:
                    if not _is_sequence(result):
                        raise TypeMismatch(
                            f"Sliced step {step.name} returned {type(result).__name__}, expected a list"
                        )
                    results.extend(result)
                progress.update(len(window))
        return results


def start(init: Init, state: S, output_dir: Optional[Union[str, Path]] = None, verbose: bool = True) -> Job[S]:
    """Create a Job; chain steps on the result and finish with `await job.run()`."""
    return Job(init, state, output_dir=output_dir, verbose=verbose)
