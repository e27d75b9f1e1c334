# selection/greedy.py
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
from tqdm import tqdm

from scoring.residual import ResidualField
from utils.errors import ConfigurationError

DEFAULT_PARAMS = dict(
    num_lines=1000,
    start_pin=0,
    thread_darkness=0.2,
    recent_window=20,
    min_score=0.0,
    tie_break='lowest',     # 'lowest' | 'highest'
    workers=1,
)


def _is_int(v):
    return isinstance(v, (int, np.integer)) and not isinstance(v, bool)


def _finite(v):
    if isinstance(v, bool) or not isinstance(v, (int, float, np.integer, np.floating)):
        return False
    return bool(np.isfinite(v))


def validate_params(params: Dict[str, Any], num_pins: int) -> Dict[str, Any]:
    P = dict(DEFAULT_PARAMS)
    if params:
        unknown = set(params) - set(DEFAULT_PARAMS)
        if unknown:
            raise ConfigurationError(f"unknown planner params: {sorted(unknown)}")
        P.update(params)

    if num_pins < 2:
        raise ConfigurationError(f"need at least 2 pins to plan, got {num_pins}")
    if not _is_int(P['num_lines']) or P['num_lines'] < 0:
        raise ConfigurationError(f"num_lines must be an integer >= 0, got {P['num_lines']!r}")
    if not _is_int(P['start_pin']) or not 0 <= P['start_pin'] < num_pins:
        raise ConfigurationError(f"start_pin must be in [0, {num_pins}), got {P['start_pin']!r}")
    if not _finite(P['thread_darkness']) or not P['thread_darkness'] > 0.0:
        raise ConfigurationError(f"thread_darkness must be > 0, got {P['thread_darkness']!r}")
    if not _finite(P['min_score']):
        raise ConfigurationError(f"min_score must be a finite number, got {P['min_score']!r}")
    if not _is_int(P['recent_window']) or P['recent_window'] < 0:
        raise ConfigurationError(f"recent_window must be an integer >= 0, got {P['recent_window']!r}")
    if P['tie_break'] not in ('lowest', 'highest'):
        raise ConfigurationError(f"tie_break must be 'lowest' or 'highest', got {P['tie_break']!r}")
    if not _is_int(P['workers']) or P['workers'] < 1:
        raise ConfigurationError(f"workers must be an integer >= 1, got {P['workers']!r}")
    P['thread_darkness'] = float(P['thread_darkness'])
    P['min_score'] = float(P['min_score'])
    return P


class GreedyThreadPlanner:
    """
    Walks pin to pin, each time taking the chord whose pixels carry the most
    residual darkness per pixel, then removes one thread's worth of darkness
    along it.

    Stops after `num_lines` chords, when every allowed chord scores at or
    below `min_score`, or when the recent-edge window leaves no candidate.
    """

    def __init__(self, field: ResidualField, cache, params: Optional[Dict[str, Any]] = None):
        self.cache = cache
        self.P = validate_params(params or {}, cache.num_pins)
        if tuple(field.shape) != tuple(cache.shape_hw):
            raise ConfigurationError(
                f"residual field is {field.shape[0]}x{field.shape[1]}, "
                f"line cache covers {cache.shape_hw[0]}x{cache.shape_hw[1]}"
            )
        self.field = field

        self.current = self.P['start_pin']
        self.sequence: List[int] = [self.current]
        self.recent = deque(maxlen=self.P['recent_window'])
        self.log: List[Dict[str, Any]] = []
        self.step = 0
        self.stop_reason = None
        self._pool = None

    # ---------------------------
    # per-step pieces
    # ---------------------------

    def _forbidden(self) -> set:
        cur = self.current
        return {b if a == cur else a for (a, b) in self.recent if cur in (a, b)}

    def candidates(self) -> np.ndarray:
        """Pins reachable from the current pin, ascending."""
        mask = np.ones(self.cache.num_pins, dtype=bool)
        mask[self.current] = False
        for pin in self._forbidden():
            mask[pin] = False
        return np.flatnonzero(mask)

    def _score_chunk(self, slots: np.ndarray) -> np.ndarray:
        out = np.empty(len(slots), np.float64)
        offs = self.cache.offsets
        flat = self.cache.flat
        for n, k in enumerate(slots):
            lo, hi = int(offs[k]), int(offs[k + 1])
            out[n] = self.field.line_mean(flat[lo:hi])
        return out

    def score(self, pins: np.ndarray) -> np.ndarray:
        """Mean residual along the chord from the current pin to each of `pins`."""
        slots = self.cache.indices_from(self.current)[pins]
        workers = self.P['workers']
        if self._pool is None or workers < 2 or len(slots) < 2 * workers:
            return self._score_chunk(slots)
        chunks = np.array_split(slots, workers)
        return np.concatenate(list(self._pool.map(self._score_chunk, chunks)))

    def _pick(self, scores: np.ndarray) -> int:
        if self.P['tie_break'] == 'highest':
            return len(scores) - 1 - int(np.argmax(scores[::-1]))
        return int(np.argmax(scores))

    def advance(self) -> bool:
        """Take one step. Returns False once planning has terminated."""
        if self.stop_reason is not None:
            return False
        if self.step >= self.P['num_lines']:
            self.stop_reason = 'line_budget'
            return False

        pins = self.candidates()
        if len(pins) == 0:
            self.stop_reason = 'no_candidates'
            return False

        scores = self.score(pins)
        j = self._pick(scores)
        best_pin, best_score = int(pins[j]), float(scores[j])
        if best_score <= self.P['min_score']:
            self.stop_reason = 'exhausted'
            return False

        # scores are all in; the field is ours to write
        k = int(self.cache.indices_from(self.current)[best_pin])
        self.field.subtract(self.cache.flat_path_at(k), self.P['thread_darkness'])

        prev = self.current
        self.sequence.append(best_pin)
        self.recent.append((min(prev, best_pin), max(prev, best_pin)))
        self.current = best_pin
        self.step += 1

        self.log.append({
            't': self.step,
            'from': prev,
            'to': best_pin,
            'score': best_score,
            'length': int(self.cache.lengths[k]),
            'candidates': int(len(pins)),
        })
        return True

    def run(self, on_step: Optional[Callable[[int, Dict[str, Any]], None]] = None,
            progress: bool = False) -> Tuple[List[int], List[Dict[str, Any]]]:
        workers = self.P['workers']
        bar = tqdm(total=self.P['num_lines'], desc='Threading', disable=not progress, leave=False)
        try:
            if workers > 1:
                self._pool = ThreadPoolExecutor(max_workers=workers)
            while self.advance():
                bar.update(1)
                if on_step:
                    on_step(self.step, self.log[-1])
        finally:
            bar.close()
            if self._pool is not None:
                self._pool.shutdown(wait=True)
                self._pool = None
        return list(self.sequence), list(self.log)


def plan_threads(intensity: np.ndarray, cache, params: Optional[Dict[str, Any]] = None,
                 on_step=None, progress: bool = False):
    """Seed a residual field from `intensity` and run the planner to completion."""
    field = ResidualField(intensity, shape_hw=cache.shape_hw)
    planner = GreedyThreadPlanner(field, cache, params)
    sequence, log = planner.run(on_step=on_step, progress=progress)
    return sequence, log, planner.stop_reason
