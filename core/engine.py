"""
TimerEngine: work/break timer state machine for FocusLedger.

This module has ZERO UI dependencies. The host (terminal loop, menu bar,
any future UI) calls tick() once per second from its own event loop,
drives the timer through the public methods and receives updates via
callbacks. Sounds and window behaviour are left to the host: the engine
only emits cue names.

Callbacks:
    on_state_change(snapshot: dict)
    on_rejected(error_type: str, message: str)
    on_event(cue: str)

Every public operation returns
    {"success": bool, "error": str | None, "error_type": str | None}
and a rejected operation leaves the state untouched.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

import config
from tracking.ledger import (
    Ledger,
    LedgerStore,
    add_category,
    adjust_daily_goal,
    ensure_day,
    set_daily_goal,
)
from tracking.session_logger import log_session
from tracking.streak import current_streak
from tracking.timeutils import day_key, format_clock

logger = logging.getLogger(__name__)

# Rejection types reported through on_rejected and the result dict
ERROR_ALREADY_RUNNING = "already_running"
ERROR_NOT_RUNNING = "not_running"
ERROR_NO_CATEGORY = "no_category"
ERROR_INVALID_MODE = "invalid_mode"
ERROR_INVALID_DURATION = "invalid_duration"
ERROR_INVALID_CATEGORY = "invalid_category"
ERROR_INVALID_GOAL = "invalid_goal"
ERROR_SAVE_FAILED = "save_failed"


@dataclass
class TimerState:
    """Transient timer state, rebuilt on every start of the app."""

    mode: str = config.MODE_WORK
    selected_work_duration_seconds: int = config.DEFAULT_WORK_SECONDS
    remaining_seconds: int = config.DEFAULT_WORK_SECONDS
    running: bool = False
    bound_category: Optional[str] = None


class TimerEngine:
    """
    Pomodoro-style timer bound to the productivity ledger.

    Handles:
    - Work / short break / long break cycling
    - Work duration selection and category binding
    - Logging finished work sessions into the ledger
    - Goal and category edits, persistence on save points
    - Current streak
    """

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def __init__(self, store: Optional[LedgerStore] = None,
                 ledger: Optional[Ledger] = None,
                 clock: Callable[[], datetime] = datetime.now) -> None:
        """
        Initialise the engine.

        Args:
            store: Ledger persistence (defaults to the configured ledger file).
            ledger: Already loaded ledger; loaded from the store if None.
            clock: Returns the current local time.
        """
        self.store: LedgerStore = store or LedgerStore()
        self.clock = clock
        self.ledger: Ledger = ledger if ledger is not None else self.store.load()
        ensure_day(self.ledger, day_key(self.clock()))

        self.state = TimerState()
        self._in_tick: bool = False
        self._streak: int = current_streak(self.ledger, self.clock())

        # ---- Callbacks (set by the host) ----
        self.on_state_change: Optional[Callable[[Dict], None]] = None
        self.on_rejected: Optional[Callable[[str, str], None]] = None
        self.on_event: Optional[Callable[[str], None]] = None

    # ------------------------------------------------------------------
    # Timer control
    # ------------------------------------------------------------------

    def start(self) -> Dict:
        """
        Start (or resume) the timer.

        A work session needs a bound category before it can start.
        """
        if self.state.running:
            return self._reject(ERROR_ALREADY_RUNNING, "Timer is already running")
        if self.state.mode == config.MODE_WORK and self.state.bound_category is None:
            return self._reject(ERROR_NO_CATEGORY, "Select a category before starting a work session")

        self.state.running = True
        self._emit(config.CUE_TIMER_START)
        logger.info(f"Timer started ({self.state.mode}, {format_clock(self.state.remaining_seconds)} left)")
        return self._ok()

    def pause(self) -> Dict:
        """Pause the running timer, keeping the remaining time."""
        if not self.state.running:
            return self._reject(ERROR_NOT_RUNNING, "Timer is not running")

        self.state.running = False
        self._emit(config.CUE_TIMER_PAUSE)
        logger.info(f"Timer paused ({format_clock(self.state.remaining_seconds)} left)")
        return self._ok()

    def reset(self) -> Dict:
        """Stop and restore the full duration of the current mode."""
        self.state.running = False
        self.state.remaining_seconds = self._mode_duration(self.state.mode)
        if self.state.mode == config.MODE_WORK:
            self.state.bound_category = None
        logger.info(f"Timer reset ({self.state.mode})")
        return self._ok()

    def skip_break(self) -> Dict:
        """End a break early. Nothing is logged."""
        if self.state.mode == config.MODE_WORK:
            return self._reject(ERROR_INVALID_MODE, "No break to skip")

        self._enter_work()
        self._emit(config.CUE_BREAK_COMPLETE)
        logger.info("Break skipped")
        return self._ok()

    def tick(self) -> None:
        """
        Advance the timer by one second.

        Called by the host once per second. When the countdown reaches zero
        the current mode completes and the next one is set up. Must not be
        re-entered from a callback.
        """
        if self._in_tick:
            logger.warning("tick() re-entered from a callback, ignoring")
            return
        if not self.state.running:
            return

        self._in_tick = True
        try:
            self.state.remaining_seconds = max(0, self.state.remaining_seconds - 1)
            if self.state.remaining_seconds == 0:
                self.state.running = False
                self._complete()
            self._notify_state_change()
        finally:
            self._in_tick = False

    # ------------------------------------------------------------------
    # Session setup
    # ------------------------------------------------------------------

    def select_work_duration(self, seconds: int) -> Dict:
        """Choose the work session length (work mode, timer stopped)."""
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds <= 0:
            return self._reject(ERROR_INVALID_DURATION, f"Duration must be a positive number of seconds: {seconds!r}")
        error = self._check_work_idle()
        if error:
            return error

        self.state.selected_work_duration_seconds = seconds
        self.state.remaining_seconds = seconds
        logger.info(f"Work duration set to {format_clock(seconds)}")
        return self._ok()

    def select_duration_minutes(self, minutes: int) -> Dict:
        """Preset or custom duration in whole minutes."""
        if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
            return self._reject(ERROR_INVALID_DURATION, f"Duration must be a positive number of minutes: {minutes!r}")
        return self.select_work_duration(minutes * 60)

    def bind_category(self, name: str) -> Dict:
        """Attach a category to the next work session."""
        trimmed = (name or "").strip() if isinstance(name, str) else ""
        if not trimmed:
            return self._reject(ERROR_INVALID_CATEGORY, "Category name cannot be empty")
        error = self._check_work_idle()
        if error:
            return error

        self.state.bound_category = trimmed
        logger.debug(f"Bound category: {trimmed}")
        return self._ok()

    def add_category(self, name: str, select: bool = True) -> Dict:
        """
        Register a category and, by default, bind it to the next session.

        Registering an existing category is fine; it is just selected.
        """
        trimmed = (name or "").strip() if isinstance(name, str) else ""
        if not trimmed:
            return self._reject(ERROR_INVALID_CATEGORY, "Category name cannot be empty")
        if select:
            # Nothing is registered if the bind would be rejected
            error = self._check_work_idle()
            if error:
                return error

        if add_category(self.ledger, trimmed):
            self.store.save(self.ledger)
        if select:
            return self.bind_category(trimmed)
        return self._ok()

    # ------------------------------------------------------------------
    # Goal
    # ------------------------------------------------------------------

    def set_goal(self, minutes: int) -> Dict:
        """Set the daily goal, persist it and refresh the streak."""
        if not set_daily_goal(self.ledger, minutes):
            return self._reject(ERROR_INVALID_GOAL, f"Daily goal must be a positive number of minutes: {minutes!r}")
        return self._goal_changed()

    def adjust_goal(self, steps: int) -> Dict:
        """Move the goal by whole stepper steps (clamped to the allowed range)."""
        adjust_daily_goal(self.ledger, steps)
        return self._goal_changed()

    def _goal_changed(self) -> Dict:
        self.store.save(self.ledger)
        self._streak = current_streak(self.ledger, self.clock())
        logger.info(f"Daily goal set to {self.ledger.daily_goal_minutes} min")
        return self._ok()

    # ------------------------------------------------------------------
    # Host lifecycle
    # ------------------------------------------------------------------

    def on_background(self) -> Dict:
        """Persist the ledger when the host goes to the background or quits."""
        if not self.store.save(self.ledger):
            return {"success": False, "error": "Could not save the ledger", "error_type": ERROR_SAVE_FAILED}
        return {"success": True, "error": None, "error_type": None}

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def current_streak(self) -> int:
        """Recompute the streak (today may have changed since the last tick)."""
        self._streak = current_streak(self.ledger, self.clock())
        return self._streak

    def get_snapshot(self) -> Dict:
        """
        Get the current timer and ledger summary for rendering.

        Returns:
            dict with the TimerState fields plus title, clock, session_count,
            daily_goal_minutes, streak and categories.
        """
        snapshot = asdict(self.state)
        snapshot.update({
            "title": config.MODE_TITLES[self.state.mode],
            "clock": format_clock(self.state.remaining_seconds),
            "session_count": self.ledger.session_count,
            "daily_goal_minutes": self.ledger.daily_goal_minutes,
            "streak": self._streak,
            "categories": list(self.ledger.categories),
        })
        return snapshot

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _complete(self) -> None:
        """Finish the current mode and set up the next one."""
        if self.state.mode != config.MODE_WORK:
            self._enter_work()
            self._emit(config.CUE_BREAK_COMPLETE)
            logger.info("Break complete")
            return

        self._emit(config.CUE_SESSION_COMPLETE)
        self.ledger = log_session(
            self.ledger,
            self.clock(),
            self.state.selected_work_duration_seconds,
            self.state.bound_category,
        )

        self.ledger.session_count += 1
        if self.ledger.session_count >= config.SESSIONS_PER_LONG_BREAK:
            self.ledger.session_count = 0
            self.state.mode = config.MODE_LONG_BREAK
        else:
            self.state.mode = config.MODE_SHORT_BREAK
        self.state.remaining_seconds = self._mode_duration(self.state.mode)
        self.state.bound_category = None

        # Breaks start on their own
        self.state.running = True
        self._emit(config.CUE_TIMER_START)

        self.store.save(self.ledger)
        self._streak = current_streak(self.ledger, self.clock())
        logger.info(f"Work session complete, starting {self.state.mode}")

    def _enter_work(self) -> None:
        self.state.mode = config.MODE_WORK
        self.state.remaining_seconds = self.state.selected_work_duration_seconds
        self.state.running = False
        self.state.bound_category = None

    def _mode_duration(self, mode: str) -> int:
        if mode == config.MODE_SHORT_BREAK:
            return config.SHORT_BREAK_SECONDS
        if mode == config.MODE_LONG_BREAK:
            return config.LONG_BREAK_SECONDS
        return self.state.selected_work_duration_seconds

    def _check_work_idle(self) -> Optional[Dict]:
        """Reject setup changes outside an idle work session."""
        if self.state.mode != config.MODE_WORK:
            return self._reject(ERROR_INVALID_MODE, "Only available during a work session")
        if self.state.running:
            return self._reject(ERROR_ALREADY_RUNNING, "Stop the timer first")
        return None

    # ------------------------------------------------------------------
    # Callback helpers
    # ------------------------------------------------------------------

    def _ok(self) -> Dict:
        self._notify_state_change()
        return {"success": True, "error": None, "error_type": None}

    def _reject(self, error_type: str, message: str) -> Dict:
        logger.info(f"Rejected ({error_type}): {message}")
        if self.on_rejected:
            try:
                self.on_rejected(error_type, message)
            except Exception as e:
                logger.debug(f"on_rejected callback error: {e}")
        return {"success": False, "error": message, "error_type": error_type}

    def _notify_state_change(self) -> None:
        if self.on_state_change:
            try:
                self.on_state_change(self.get_snapshot())
            except Exception as e:
                logger.debug(f"on_state_change callback error: {e}")

    def _emit(self, cue: str) -> None:
        if self.on_event:
            try:
                self.on_event(cue)
            except Exception as e:
                logger.debug(f"on_event callback error: {e}")
