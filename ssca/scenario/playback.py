"""Playback controller: timed sweep of the levers toward their targets.

State machine::

    IDLE --play--> PLAYING --(t reaches 100)--> COMPLETED
                   PLAYING --pause--> PAUSED --play--> PLAYING (resumes at t)
    any state --jump--> COMPLETED (t = 100, one final update cycle)

Every tick advances the timeline counter ``t`` by a fixed step, interpolates
the scenario's current values to ``round(target * t / 100)``, recomputes the
heuristic estimate and dispatches an optimizer request. Requests carry a
monotonically increasing sequence number; only the response to the most
recently dispatched request is applied (last request wins), anything older
is dropped.

Everything runs on one asyncio loop. Ticks come from a tick source and
optimizer calls are scheduled as tasks on the same loop, so no locking is
needed. Pausing or disposing cancels the tick timer but never in-flight
requests.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Coroutine

from ssca.scenario import estimator
from ssca.scenario.constants import (
    DEFAULT_TICK_PERIOD_S,
    DEFAULT_TICK_STEP,
    TIMELINE_END,
)
from ssca.scenario.estimator import BaselineSource
from ssca.scenario.models import Estimate, OptimizationResult, ParetoPoint, Reconciliation
from ssca.scenario.pareto import synthesize_front
from ssca.scenario.parameters import ScenarioParameters, ScenarioState
from ssca.scenario.signals import Signal
from ssca.scenario.ticker import AsyncioTickSource
from ssca.utils import SSCAError

logger = logging.getLogger(__name__)


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    COMPLETED = "completed"


def _spawn_on_running_loop(coro: Coroutine[Any, Any, None]) -> asyncio.Task:
    return asyncio.get_running_loop().create_task(coro)


class PlaybackController:
    """Drives a sweep over a ``ScenarioParameters`` and reconciles estimates.

    Parameters
    ----------
    parameters : the scenario being animated; read fresh on every tick.
    optimizer : anything with ``async optimize(modal, renewable)``; ``None``
        disables remote requests (heuristic only).
    baseline_source : forecast/supplier figures for the estimator.
    tick_source : anything with ``start(period_s, callback)`` returning a
        timer with ``active`` and ``cancel()``; defaults to the running
        asyncio loop.
    period_s : tick period in seconds.
    step : timeline units added per tick.
    optimize_every : dispatch a request every N ticks. The final tick and
        ``jump()`` always dispatch.
    spawn : schedules an optimizer coroutine; defaults to ``create_task`` on
        the running loop.
    """

    def __init__(
        self,
        parameters: ScenarioParameters,
        optimizer: Any = None,
        baseline_source: BaselineSource | None = None,
        tick_source: Any = None,
        period_s: float = DEFAULT_TICK_PERIOD_S,
        step: int = DEFAULT_TICK_STEP,
        optimize_every: int = 1,
        spawn: Callable[[Coroutine[Any, Any, None]], Any] | None = None,
    ) -> None:
        if step < 1:
            raise ValueError("step must be a positive number of timeline units")
        self.parameters = parameters
        self.optimizer = optimizer
        self.baseline_source = baseline_source or BaselineSource()
        self.tick_source = tick_source or AsyncioTickSource()
        self.period_s = period_s
        self.step = step
        self.optimize_every = max(1, optimize_every)
        self._spawn = spawn or _spawn_on_running_loop

        self.state = PlaybackState.IDLE
        self.t = 0
        self._ticks = 0
        self._timer: Any = None
        self._disposed = False

        self._sequence = 0
        self._applied_sequence = 0
        self._applied_levels: tuple[float, float] | None = None
        self._in_flight: set[Any] = set()

        self.last_result: OptimizationResult | None = None
        self.pareto: list[ParetoPoint] = []
        self.last_notice: str | None = None

        self.state_changed = Signal("state_changed")
        self.estimate_updated = Signal("estimate_updated")
        self.result_applied = Signal("result_applied")
        self.notice = Signal("notice")

        self.estimate: Estimate = estimator.estimate(parameters.snapshot(), self.baseline_source)
        self._unsubscribe = parameters.subscribe(self._on_scenario_changed)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def sequence(self) -> int:
        """Sequence number of the most recently dispatched optimizer request."""
        return self._sequence

    @property
    def applied_sequence(self) -> int:
        return self._applied_sequence

    @property
    def fraction(self) -> float:
        return self.t / TIMELINE_END

    @property
    def timer_active(self) -> bool:
        return self._timer is not None and self._timer.active

    @property
    def pending_requests(self) -> int:
        return len(self._in_flight)

    @property
    def reconciliation(self) -> Reconciliation:
        """Current figures and whether the optimizer or the heuristic backs them.

        The optimizer result is authoritative only while the lever values it
        was computed for are still the current ones.
        """
        state = self.parameters.snapshot()
        current = (state.modal_shift_current, state.renewable_current)
        result = self.last_result if self._applied_levels == current else None
        seq = self._applied_sequence if result is not None else self._sequence
        return Reconciliation.build(self.estimate, result, seq)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def play(self) -> None:
        if self._disposed:
            logger.warning("play() called on a disposed playback controller")
            return
        if self.state is PlaybackState.PLAYING:
            return
        if self.state is PlaybackState.COMPLETED:
            self.t = 0
            self._ticks = 0
        self._start_timer()
        self._set_state(PlaybackState.PLAYING)

    def pause(self) -> None:
        if self.state is not PlaybackState.PLAYING:
            return
        self._stop_timer()
        self._set_state(PlaybackState.PAUSED)

    def toggle(self) -> None:
        if self.state is PlaybackState.PLAYING:
            self.pause()
        else:
            self.play()

    def jump(self) -> None:
        """Skip straight to the end of the sweep and run one final update."""
        if self._disposed:
            logger.warning("jump() called on a disposed playback controller")
            return
        self._stop_timer()
        self.t = TIMELINE_END
        self._update_cycle(dispatch=True)
        self._set_state(PlaybackState.COMPLETED)

    def dispose(self) -> None:
        """Cancel the tick source and detach from the scenario. Idempotent.

        A sweep that was playing ends up ``PAUSED`` so ``state`` never claims
        a running timer that no longer exists.
        """
        self._stop_timer()
        if self.state is PlaybackState.PLAYING:
            self._set_state(PlaybackState.PAUSED)
        if not self._disposed:
            self._unsubscribe()
            self._disposed = True

    def __enter__(self) -> "PlaybackController":
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    def _start_timer(self) -> None:
        # At most one active timer per controller
        self._stop_timer()
        self._timer = self.tick_source.start(self.period_s, self._on_tick)

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_tick(self) -> None:
        if self.state is not PlaybackState.PLAYING:
            return
        self.t = min(TIMELINE_END, self.t + self.step)
        self._ticks += 1
        finished = self.t >= TIMELINE_END
        if finished:
            self._stop_timer()
        self._update_cycle(dispatch=finished or self._ticks % self.optimize_every == 0)
        if finished:
            self._set_state(PlaybackState.COMPLETED)

    def _update_cycle(self, dispatch: bool) -> None:
        self.parameters.tick(self.fraction)
        if dispatch:
            self.request_optimization()

    def _set_state(self, new: PlaybackState) -> None:
        old, self.state = self.state, new
        if old is not new:
            logger.debug("Playback %s -> %s at t=%d", old.value, new.value, self.t)
            self.state_changed.emit(old, new)

    # ------------------------------------------------------------------
    # Estimation
    # ------------------------------------------------------------------

    def _on_scenario_changed(self, state: ScenarioState) -> None:
        self._refresh_estimate(state)

    def _refresh_estimate(self, state: ScenarioState | None = None) -> Estimate:
        self.estimate = estimator.estimate(state or self.parameters.snapshot(), self.baseline_source)
        self.estimate_updated.emit(self.estimate)
        return self.estimate

    def set_baseline_source(self, source: BaselineSource) -> Estimate:
        self.baseline_source = source
        return self._refresh_estimate()

    # ------------------------------------------------------------------
    # Optimizer reconciliation
    # ------------------------------------------------------------------

    def request_optimization(self) -> int | None:
        """Dispatch an optimizer request for the current lever values.

        Returns the request's sequence number, or ``None`` when no optimizer
        is configured.
        """
        if self.optimizer is None:
            return None
        self._sequence += 1
        seq = self._sequence
        state = self.parameters.snapshot()
        task = self._spawn(self._run_request(seq, state.as_request()))
        if isinstance(task, asyncio.Future):
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
        return seq

    async def _run_request(self, seq: int, request: dict[str, float]) -> None:
        levels = (request["modal_shift_pct"], request["renewable_increase_pct"])
        try:
            result = await self.optimizer.optimize(**request)
        except SSCAError as exc:
            self._on_request_failed(seq, str(exc))
            return
        except Exception as exc:
            logger.exception("Optimizer request %d raised unexpectedly", seq)
            self._on_request_failed(seq, f"Unexpected optimizer error: {exc}")
            return
        self.apply_result(seq, levels, result)

    def apply_result(self, seq: int, levels: tuple[float, float], result: OptimizationResult) -> bool:
        """Apply an optimizer result if it answers the latest request."""
        if seq != self._sequence:
            logger.debug("Discarding stale optimizer response %d (latest %d)", seq, self._sequence)
            return False
        self.last_result = result
        self._applied_sequence = seq
        self._applied_levels = levels
        self.pareto = synthesize_front(result=result)
        self.last_notice = None
        reconciliation = self.reconciliation
        logger.debug(
            "Applied optimizer result %d: reduction %.1f%% (heuristic %.1f%%)",
            seq, result.emission_reduction_pct, self.estimate.emission_reduction_pct,
        )
        self.result_applied.emit(reconciliation)
        return True

    def _on_request_failed(self, seq: int, message: str) -> None:
        if seq != self._sequence:
            logger.debug("Ignoring failure of stale optimizer request %d: %s", seq, message)
            return
        # Last-known-good result and estimate stay on display
        logger.warning("Optimizer request %d failed: %s", seq, message)
        self.last_notice = message
        self.notice.emit(message)

    async def drain(self) -> None:
        """Wait for every in-flight optimizer request to settle."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
