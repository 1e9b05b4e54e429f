#!/usr/bin/env python3
"""
Polling Controller for NetGest Telemetry
Runs the capture pipeline for one interface on a fixed interval and owns
that interface's monitoring session state.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import config
from capture_pipeline import TelemetryPipeline
from errors import MonitoringStopped, TelemetryError
from fallback_simulator import FallbackSimulator
from models import MetricsSource, MonitoringSession, NetworkMetrics, SessionState, utc_now

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    metrics: NetworkMetrics
    failed: bool = False
    error: Optional[str] = None
    terminal: Optional[MonitoringStopped] = None


class PollingController:
    """
    Idle -> Running -> Stopping -> Idle.

    Ticks of one session never overlap: the next tick is scheduled only after
    the previous one has returned. ``stop()`` may be called while a tick is in
    flight; that tick completes but nothing further is scheduled.
    """

    def __init__(self, pipeline=None, simulator=None, max_failures=None,
                 on_sample=None, on_stopped=None):
        self.pipeline = pipeline or TelemetryPipeline()
        self.simulator = simulator or self.pipeline.simulator or FallbackSimulator()
        self.max_failures = config.MAX_CONSECUTIVE_FAILURES if max_failures is None else max_failures
        self.on_sample = on_sample
        self.on_stopped = on_stopped

        self.session = None
        self.last_session = None
        self.terminal_error = None
        self._stop_event = None
        self._thread = None
        self._lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._start_lock = threading.Lock()

    @property
    def state(self):
        session = self.session
        return session.state if session else SessionState.IDLE

    @property
    def running(self):
        return self.state == SessionState.RUNNING

    def start(self, interface_id, interval_ms=None):
        """
        Start monitoring ``interface_id``, superseding any current session.

        The first sample is taken immediately and returned; later samples are
        taken every ``interval_ms`` on a background thread. Concurrent starts
        on one controller are serialized so only one session is ever running.
        """
        interval_ms = config.DEFAULT_POLL_INTERVAL_MS if interval_ms is None else interval_ms
        with self._start_lock:
            self.stop()

            session = MonitoringSession(
                interface_id=interface_id,
                interval_ms=interval_ms,
                state=SessionState.RUNNING,
                started_at=utc_now(),
            )
            stop_event = threading.Event()
            with self._lock:
                self.session = session
                self.last_session = session
                self.terminal_error = None
                self._stop_event = stop_event

            logger.info(f"Monitoring started for {interface_id} every {interval_ms}ms")
            first = self._tick(session)

            if session.running:
                self._thread = threading.Thread(
                    target=self._poll_loop,
                    args=(session, stop_event),
                    name=f"poll-{interface_id}",
                    daemon=True,
                )
                self._thread.start()
            return first

    def stop(self, wait=False):
        """Stop the current session; a no-op when already idle"""
        with self._lock:
            session = self.session
            if session is None or session.state == SessionState.IDLE:
                return False
            session.state = SessionState.STOPPING
            self._release(session)
            thread = self._thread

        logger.info(f"Monitoring stopped for {session.interface_id}")
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=config.CAPTURE_DURATION + config.CAPTURE_TIMEOUT_MARGIN)
        return True

    def tick(self):
        """Run one tick of the current session now; None when idle"""
        session = self.session
        if session is None or not session.running:
            return None
        return self._tick(session)

    def _release(self, session):
        # Caller holds self._lock
        if self._stop_event is not None:
            self._stop_event.set()
        session.state = SessionState.IDLE
        if self.session is session:
            self.session = None

    def _poll_loop(self, session, stop_event):
        interval = session.interval_ms / 1000
        while not stop_event.wait(interval):
            if not session.running:
                break
            self._tick(session)
            if not session.running:
                break

    def _tick(self, session):
        with self._tick_lock:
            error = None
            try:
                metrics = self.pipeline.collect_metrics(session.interface_id)
            except TelemetryError as e:
                metrics = None
                error = e
            except Exception as e:
                logger.error(f"Unexpected error sampling {session.interface_id}: {e}")
                metrics = None
                error = e

            terminal = None
            with self._lock:
                session.tick_count += 1
                if error is None:
                    session.consecutive_failure_count = 0
                    session.last_sample = metrics
                else:
                    session.consecutive_failure_count += 1
                    logger.warning(
                        f"Sample failed for {session.interface_id} "
                        f"({session.consecutive_failure_count} consecutive): {error}"
                    )
                    metrics = self.simulator.simulate_metrics(session.interface_id)
                    if session.consecutive_failure_count > self.max_failures and session.state == SessionState.RUNNING:
                        session.state = SessionState.STOPPING
                        terminal = MonitoringStopped(
                            session.interface_id, session.consecutive_failure_count, str(error)
                        )
                        self.terminal_error = terminal
                        self._release(session)

        result = TickResult(
            metrics=metrics,
            failed=error is not None,
            error=str(error) if error is not None else None,
            terminal=terminal,
        )
        if self.on_sample is not None:
            self.on_sample(result.metrics, session)
        if terminal is not None:
            logger.error(str(terminal))
            if self.on_stopped is not None:
                self.on_stopped(terminal)
        return result

    def cached_sample(self, max_age=None):
        """The running session's last real sample re-tagged ``cached`` while it is fresh"""
        max_age = config.CACHED_SAMPLE_MAX_AGE if max_age is None else max_age
        session = self.session
        if session is None or not session.running or session.last_sample is None:
            return None
        if utc_now() - session.last_sample.timestamp > timedelta(seconds=max_age):
            return None
        sample = session.last_sample
        if sample.source == MetricsSource.SIMULATED:
            return sample
        return sample.with_source(MetricsSource.CACHED)

    def status(self):
        session = self.session or self.last_session
        data = session.to_dict() if session else {'state': SessionState.IDLE.value}
        if self.terminal_error is not None:
            data['terminalError'] = self.terminal_error.to_dict()
        return data


class MonitoringRegistry:
    """One PollingController per interface"""

    def __init__(self, controller_factory=None):
        self.controller_factory = controller_factory or PollingController
        self.controllers = {}
        self._lock = threading.Lock()

    def controller_for(self, interface_id):
        with self._lock:
            controller = self.controllers.get(interface_id)
            if controller is None:
                controller = self.controller_factory()
                self.controllers[interface_id] = controller
            return controller

    def start(self, interface_id, interval_ms=None):
        return self.controller_for(interface_id).start(interface_id, interval_ms)

    def stop(self, interface_id):
        with self._lock:
            controller = self.controllers.get(interface_id)
        if controller is None:
            return False
        return controller.stop()

    def stop_all(self):
        with self._lock:
            controllers = list(self.controllers.values())
        for controller in controllers:
            controller.stop()

    def status(self, interface_id):
        with self._lock:
            controller = self.controllers.get(interface_id)
        if controller is None:
            return {'interface': interface_id, 'state': SessionState.IDLE.value}
        return controller.status()

    def cached_sample(self, interface_id, max_age=None):
        with self._lock:
            controller = self.controllers.get(interface_id)
        if controller is None:
            return None
        return controller.cached_sample(max_age)
